"""
Rescheduling Engine Module

Moves an unpaid installment to a new due date, optionally adding arrears
interest, and suggests that interest from how long the installment is overdue.
"""

from datetime import date, datetime, timezone
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
import logging
import math
import threading

from .audit import AuditTrail, AuditEventType
from .balances import installment_owed_amount, resolve_base_amount
from .dates import days_until, parse_optional_date, today as local_today
from .errors import ValidationError
from .installments import Installment, InstallmentRepository, InstallmentStatus
from .money import CENT, ZERO, to_amount
from .storage import StorageInterface
from .transactions import TransactionManager


logger = logging.getLogger(__name__)

DEFAULT_MONTHLY_RATE = Decimal('0.01')
DEFAULT_BLOCK_DAYS = 30


def suggest_arrears_interest(
    owed_base,
    days_until_due: int,
    rate=DEFAULT_MONTHLY_RATE,
    block: int = DEFAULT_BLOCK_DAYS
) -> Decimal:
    """
    Suggested arrears interest: owed_base x rate for every started block of
    days overdue. Installments that are not overdue get zero.

    >>> suggest_arrears_interest(Decimal('100'), -45)
    Decimal('2.00')
    """
    if days_until_due >= 0:
        return ZERO
    blocks = math.ceil(abs(days_until_due) / block)
    interest = to_amount(owed_base) * Decimal(str(rate)) * blocks
    return interest.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class InterestSuggestion:
    installment_id: str
    owed_base: Decimal
    days_until_due: int
    suggested_interest: Decimal


class RescheduleEngine:
    """
    Reschedules installments
    """

    def __init__(
        self,
        storage: StorageInterface,
        audit_trail: AuditTrail,
        installments: InstallmentRepository,
        transactions: TransactionManager,
        monthly_rate=DEFAULT_MONTHLY_RATE,
        block_days: int = DEFAULT_BLOCK_DAYS,
        lock: Optional[threading.RLock] = None
    ):
        self.storage = storage
        self.audit_trail = audit_trail
        self.installments = installments
        self.transactions = transactions
        self.monthly_rate = Decimal(str(monthly_rate))
        self.block_days = block_days
        self._lock = lock or threading.RLock()

    def suggest(self, installment_id: str, today: Optional[date] = None) -> InterestSuggestion:
        """Arrears interest suggestion for an installment"""
        installment = self.installments.require(installment_id)
        transaction = self.transactions.get_transaction(installment.transaction_id)
        base = resolve_base_amount(installment, transaction)
        days = days_until(installment.due_date, today)
        return InterestSuggestion(
            installment_id=installment.id,
            owed_base=base,
            days_until_due=days,
            suggested_interest=suggest_arrears_interest(base, days, self.monthly_rate, self.block_days)
        )

    def reschedule(
        self,
        installment_id: str,
        new_due_date,
        arrears_interest=0,
        reason: Optional[str] = None,
        today: Optional[date] = None,
        user_id: Optional[str] = None
    ) -> Installment:
        """
        Move an installment to new_due_date and fold arrears_interest into
        what it owes.

        Raises:
            ValidationError: missing date, negative interest, or paid installment
            NotFoundError: unknown installment
        """
        new_due = parse_optional_date(new_due_date)
        if new_due is None:
            raise ValidationError("A new due date is required")
        interest = to_amount(arrears_interest if arrears_interest is not None else 0)
        if interest < 0:
            raise ValidationError("Arrears interest cannot be negative")
        reference = today or local_today()

        with self._lock, self.storage.atomic():
            installment = self.installments.require(installment_id)
            if installment.status == InstallmentStatus.PAID:
                raise ValidationError(f"Installment {installment_id} is already paid")

            transaction = self.transactions.get_transaction(installment.transaction_id)
            owed_before = installment_owed_amount(installment, transaction)
            previous_due = installment.due_date

            if new_due < reference:
                logger.warning(
                    "Installment %s rescheduled to %s, which is already past",
                    installment_id, new_due.isoformat()
                )

            installment.due_date = new_due
            installment.override_amount = owed_before + interest
            installment.arrears_interest = interest
            installment.rescheduled_on = reference
            installment.reschedule_reason = reason
            installment.status = InstallmentStatus.RESCHEDULED
            installment.updated_at = datetime.now(timezone.utc)
            self.installments.save(installment)

        self.audit_trail.log_event(
            event_type=AuditEventType.INSTALLMENT_RESCHEDULED,
            entity_type="installment",
            entity_id=installment.id,
            metadata={
                "transaction_id": installment.transaction_id,
                "previous_due_date": previous_due,
                "new_due_date": new_due,
                "arrears_interest": interest,
                "owed": installment.override_amount,
                "reason": reason
            },
            user_id=user_id
        )
        logger.info("Installment %s rescheduled to %s", installment.id, new_due.isoformat())
        return installment
