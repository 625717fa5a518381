"""
Installment Module

Installment records, the schedule generator that splits a transaction total
into N dated installments, and the repository that persists them.
"""

from datetime import date, datetime, timezone
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict, List, Optional, Union
import logging
import uuid

from .dates import PaymentPlan, due_date_for, parse_local_date, parse_optional_date
from .errors import ValidationError, NotFoundError
from .money import CENT, ZERO, to_amount, optional_amount
from .storage import StorageInterface, StorageRecord


logger = logging.getLogger(__name__)


class InstallmentStatus(Enum):
    """Installment lifecycle status"""
    PENDING = "pending"
    PARTIAL = "partial"          # Some money received, not settled
    PAID = "paid"
    RESCHEDULED = "rescheduled"  # Due date moved, possibly with arrears interest


class PaymentMethod(Enum):
    """How a payment was received"""
    CASH = "cash"
    TRANSFER = "transfer"
    CHECK = "check"
    CARD = "card"


@dataclass
class ScheduledInstallment:
    """Single entry in a generated schedule"""
    number: int
    amount: Decimal
    due_date: date


@dataclass
class Installment(StorageRecord):
    """One dated slice of a transaction total"""
    transaction_id: str
    number: int
    amount: Decimal                           # Base amount from the generator
    due_date: date
    status: InstallmentStatus = InstallmentStatus.PENDING
    amount_paid: Decimal = ZERO
    override_amount: Optional[Decimal] = None  # Set by a reschedule, includes arrears interest
    arrears_interest: Decimal = ZERO
    paid_date: Optional[date] = None
    payment_method: Optional[PaymentMethod] = None
    receipt_number: Optional[str] = None
    notes: Optional[str] = None
    rescheduled_on: Optional[date] = None
    reschedule_reason: Optional[str] = None

    def __post_init__(self):
        if self.number < 1:
            raise ValidationError("Installment number must be 1 or greater")
        if self.amount_paid < 0:
            raise ValidationError("Amount paid cannot be negative")

    @property
    def is_paid(self) -> bool:
        return self.status == InstallmentStatus.PAID


def generate_schedule(
    total: Union[Decimal, str, int],
    installment_count: int,
    start_date: Union[date, str],
    payment_plan: PaymentPlan
) -> List[ScheduledInstallment]:
    """
    Split a total into installment_count equal installments.

    Each amount is total / N rounded half-up to cents; the last installment
    takes whatever cents are left over so the schedule sums to total exactly.
    The first installment falls due one period after start_date.

    Raises:
        ValidationError: total or installment_count is not positive, or the
            total is too small to leave the last installment a positive amount
    """
    total = to_amount(total)
    if total <= 0:
        raise ValidationError("Total must be positive")
    if not isinstance(installment_count, int) or installment_count <= 0:
        raise ValidationError("Installment count must be a positive integer")

    start = parse_local_date(start_date)
    payment_plan = PaymentPlan(payment_plan)
    base_amount = (total / installment_count).quantize(CENT, rounding=ROUND_HALF_UP)
    if base_amount <= 0 or total - base_amount * (installment_count - 1) <= 0:
        raise ValidationError(
            f"Total {total} is too small to split into {installment_count} installments"
        )

    schedule = []
    allocated = ZERO
    for number in range(1, installment_count + 1):
        if number == installment_count:
            amount = total - allocated
        else:
            amount = base_amount
            allocated += amount
        schedule.append(ScheduledInstallment(
            number=number,
            amount=amount,
            due_date=due_date_for(start, payment_plan, number)
        ))

    return schedule


class InstallmentRepository:
    """
    Persists installments in the record store
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "installments"

    def create_for_schedule(self, transaction_id: str,
                            schedule: List[ScheduledInstallment]) -> List[Installment]:
        """Materialize a generated schedule as pending installments"""
        now = datetime.now(timezone.utc)
        installments = []
        for entry in schedule:
            installment = Installment(
                id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                transaction_id=transaction_id,
                number=entry.number,
                amount=entry.amount,
                due_date=entry.due_date
            )
            self.save(installment)
            installments.append(installment)
        return installments

    def save(self, installment: Installment) -> None:
        self.storage.save(self.table_name, installment.id, self._installment_to_dict(installment))

    def get(self, installment_id: str) -> Optional[Installment]:
        """Get installment by ID"""
        data = self.storage.load(self.table_name, installment_id)
        if data:
            return self._installment_from_dict(data)
        return None

    def require(self, installment_id: str) -> Installment:
        installment = self.get(installment_id)
        if not installment:
            raise NotFoundError(f"Installment {installment_id} not found")
        return installment

    def list_for_transaction(self, transaction_id: str) -> List[Installment]:
        """All installments of a transaction ordered by number"""
        data = self.storage.find(self.table_name, {"transaction_id": transaction_id}, order_by="number")
        return [self._installment_from_dict(item) for item in data]

    def list_unpaid(self, due_on_or_before: Optional[date] = None) -> List[Installment]:
        """Installments not yet paid, oldest due date first"""
        filters: Dict = {"status__ne": InstallmentStatus.PAID.value}
        if due_on_or_before is not None:
            filters["due_date__lte"] = due_on_or_before
        data = self.storage.find(self.table_name, filters, order_by="due_date")
        return [self._installment_from_dict(item) for item in data]

    def list_by_status(self, status: InstallmentStatus) -> List[Installment]:
        data = self.storage.find(self.table_name, {"status": status.value}, order_by="due_date")
        return [self._installment_from_dict(item) for item in data]

    def list_all(self) -> List[Installment]:
        return [self._installment_from_dict(item) for item in self.storage.load_all(self.table_name)]

    def delete_for_transaction(self, transaction_id: str) -> int:
        """Delete every installment of a transaction; returns how many were removed"""
        removed = 0
        for data in self.storage.find(self.table_name, {"transaction_id": transaction_id}):
            if self.storage.delete(self.table_name, data['id']):
                removed += 1
        return removed

    def _installment_to_dict(self, installment: Installment) -> Dict:
        return installment.to_dict()

    def _installment_from_dict(self, data: Dict) -> Installment:
        payment_method = data.get('payment_method')
        return Installment(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            transaction_id=data['transaction_id'],
            number=int(data['number']),
            amount=to_amount(data['amount']),
            due_date=parse_local_date(data['due_date']),
            status=InstallmentStatus(data.get('status', InstallmentStatus.PENDING.value)),
            amount_paid=to_amount(data.get('amount_paid') or 0),
            override_amount=optional_amount(data.get('override_amount')),
            arrears_interest=to_amount(data.get('arrears_interest') or 0),
            paid_date=parse_optional_date(data.get('paid_date')),
            payment_method=PaymentMethod(payment_method) if payment_method else None,
            receipt_number=data.get('receipt_number'),
            notes=data.get('notes'),
            rescheduled_on=parse_optional_date(data.get('rescheduled_on')),
            reschedule_reason=data.get('reschedule_reason')
        )
