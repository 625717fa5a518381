"""
Transaction Module

A transaction is an installment sale of a catalog product or a cash loan.
Creating one computes its total and generates its installment schedule in a
single atomic write.
"""

from datetime import date, datetime, timezone
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict, List, Optional
import logging
import uuid

from .audit import AuditTrail, AuditEventType
from .customers import CustomerManager
from .dates import PaymentPlan, parse_local_date, parse_optional_date, days_until, today as local_today
from .errors import ValidationError, NotFoundError
from .installments import Installment, InstallmentRepository, generate_schedule
from .money import CENT, ZERO, to_amount
from .products import ProductCatalog
from .storage import StorageInterface, StorageRecord


logger = logging.getLogger(__name__)


class TransactionKind(Enum):
    SALE = "sale"
    LOAN = "loan"


class TransactionStatus(Enum):
    """Transaction lifecycle status"""
    ACTIVE = "active"          # Installments outstanding
    COMPLETED = "completed"    # Every installment paid
    DELINQUENT = "delinquent"  # Overdue past the grace period


@dataclass
class Transaction(StorageRecord):
    """Installment sale or loan"""
    customer_id: str
    kind: TransactionKind
    principal: Decimal
    interest_rate: Decimal          # Flat percentage over principal
    total: Decimal
    payment_plan: PaymentPlan
    installment_count: int
    installment_amount: Decimal
    start_date: date
    status: TransactionStatus = TransactionStatus.ACTIVE
    product_id: Optional[str] = None
    description: Optional[str] = None
    invoice_number: Optional[str] = None
    completed_date: Optional[date] = None

    def __post_init__(self):
        if self.principal <= 0:
            raise ValidationError("Principal must be positive")
        if self.interest_rate < 0:
            raise ValidationError("Interest rate cannot be negative")
        if self.installment_count <= 0:
            raise ValidationError("Installment count must be positive")

    @property
    def is_active(self) -> bool:
        return self.status != TransactionStatus.COMPLETED


def calculate_total(principal: Decimal, interest_rate: Decimal) -> Decimal:
    """principal x (1 + rate/100), rounded to cents"""
    principal = to_amount(principal)
    rate = Decimal(str(interest_rate))
    if rate == 0:
        return principal
    return (principal * (Decimal('1') + rate / Decimal('100'))).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_installment_amount(total: Decimal, installment_count: int) -> Decimal:
    return (to_amount(total) / installment_count).quantize(CENT, rounding=ROUND_HALF_UP)


class TransactionManager:
    """
    Creates transactions with their schedules and tracks their status
    """

    def __init__(
        self,
        storage: StorageInterface,
        audit_trail: AuditTrail,
        customer_manager: CustomerManager,
        product_catalog: ProductCatalog,
        installments: InstallmentRepository
    ):
        self.storage = storage
        self.audit_trail = audit_trail
        self.customer_manager = customer_manager
        self.product_catalog = product_catalog
        self.installments = installments
        self.table_name = "transactions"

    def create_transaction(
        self,
        customer_id: str,
        kind: TransactionKind,
        installment_count: int,
        payment_plan: PaymentPlan,
        start_date,
        principal=None,
        interest_rate=0,
        product_id: Optional[str] = None,
        description: Optional[str] = None,
        invoice_number: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> Transaction:
        """
        Create a sale or loan and its installment schedule

        Sales need a catalog product; when principal is omitted the product's
        unit price is used. A sale takes one unit out of stock.

        Raises:
            ValidationError: bad amounts, count, plan or start date
            NotFoundError: unknown customer or product
        """
        kind = TransactionKind(kind)
        payment_plan = PaymentPlan(payment_plan)
        start = parse_local_date(start_date)

        self.customer_manager.require_customer(customer_id)

        product = None
        if product_id:
            product = self.product_catalog.require_product(product_id)
        elif kind == TransactionKind.SALE:
            raise ValidationError("A sale must reference a product")

        if principal is None:
            if product is None:
                raise ValidationError("Principal is required")
            principal = product.unit_price
        principal = to_amount(principal)

        try:
            rate = Decimal(str(interest_rate))
        except ArithmeticError:
            raise ValidationError(f"Invalid interest rate: {interest_rate!r}")
        if not rate.is_finite():
            raise ValidationError(f"Invalid interest rate: {interest_rate!r}")

        if not isinstance(installment_count, int) or installment_count <= 0:
            raise ValidationError("Installment count must be a positive integer")

        total = calculate_total(principal, rate)
        now = datetime.now(timezone.utc)
        transaction = Transaction(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            customer_id=customer_id,
            kind=kind,
            principal=principal,
            interest_rate=rate,
            total=total,
            payment_plan=payment_plan,
            installment_count=installment_count,
            installment_amount=calculate_installment_amount(total, installment_count),
            start_date=start,
            product_id=product_id,
            description=description,
            invoice_number=invoice_number
        )
        schedule = generate_schedule(total, installment_count, start, payment_plan)

        with self.storage.atomic():
            self._save_transaction(transaction)
            self.installments.create_for_schedule(transaction.id, schedule)
            if product is not None and kind == TransactionKind.SALE:
                self.product_catalog.decrement_stock(product.id)

        self.audit_trail.log_event(
            event_type=AuditEventType.TRANSACTION_CREATED,
            entity_type="transaction",
            entity_id=transaction.id,
            metadata={
                "customer_id": customer_id,
                "kind": kind,
                "total": total,
                "installment_count": installment_count,
                "payment_plan": payment_plan
            },
            user_id=user_id
        )
        logger.info(
            "Transaction %s created: %s installments of %s",
            transaction.id, installment_count, transaction.installment_amount
        )
        return transaction

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        """Get transaction by ID"""
        data = self.storage.load(self.table_name, transaction_id)
        if data:
            return self._transaction_from_dict(data)
        return None

    def require_transaction(self, transaction_id: str) -> Transaction:
        transaction = self.get_transaction(transaction_id)
        if not transaction:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return transaction

    def list_for_customer(self, customer_id: str) -> List[Transaction]:
        """Customer's transactions, oldest start date first"""
        data = self.storage.find(self.table_name, {"customer_id": customer_id}, order_by="start_date")
        return [self._transaction_from_dict(item) for item in data]

    def list_transactions(self, status: Optional[TransactionStatus] = None) -> List[Transaction]:
        filters = {"status": TransactionStatus(status).value} if status else {}
        data = self.storage.find(self.table_name, filters, order_by="start_date", descending=True)
        return [self._transaction_from_dict(item) for item in data]

    def set_status(self, transaction: Transaction, status: TransactionStatus,
                   as_of: Optional[date] = None, user_id: Optional[str] = None) -> Transaction:
        """Persist a status change and record it in the audit trail"""
        if transaction.status == status:
            return transaction

        transaction.status = status
        transaction.completed_date = (as_of or local_today()) if status == TransactionStatus.COMPLETED else None
        transaction.updated_at = datetime.now(timezone.utc)
        self._save_transaction(transaction)

        event_type = {
            TransactionStatus.COMPLETED: AuditEventType.TRANSACTION_COMPLETED,
            TransactionStatus.DELINQUENT: AuditEventType.TRANSACTION_DELINQUENT,
        }.get(status)
        if event_type:
            self.audit_trail.log_event(
                event_type=event_type,
                entity_type="transaction",
                entity_id=transaction.id,
                metadata={"status": status},
                user_id=user_id
            )
        return transaction

    def delete_transaction(self, transaction_id: str, user_id: Optional[str] = None) -> int:
        """
        Delete a transaction and every one of its installments

        Returns:
            Number of installments removed
        """
        transaction = self.require_transaction(transaction_id)

        with self.storage.atomic():
            removed = self.installments.delete_for_transaction(transaction_id)
            self.storage.delete(self.table_name, transaction_id)

        self.audit_trail.log_event(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            metadata={"customer_id": transaction.customer_id, "installments_removed": removed},
            user_id=user_id
        )
        logger.info("Transaction %s deleted with %s installments", transaction_id, removed)
        return removed

    def mark_delinquent_transactions(self, grace_days: int = 30,
                                     today: Optional[date] = None) -> Dict[str, int]:
        """
        Flag active transactions with an installment overdue by more than grace_days,
        and return delinquent ones that caught up to active.
        """
        reference = today or local_today()
        results = {"transactions_processed": 0, "marked_delinquent": 0, "restored_active": 0}

        candidates = self.storage.find(
            self.table_name,
            {"status__in": [TransactionStatus.ACTIVE.value, TransactionStatus.DELINQUENT.value]}
        )
        for data in candidates:
            transaction = self._transaction_from_dict(data)
            results["transactions_processed"] += 1

            seriously_overdue = any(
                not installment.is_paid and days_until(installment.due_date, reference) < -grace_days
                for installment in self.installments.list_for_transaction(transaction.id)
            )

            if seriously_overdue and transaction.status == TransactionStatus.ACTIVE:
                self.set_status(transaction, TransactionStatus.DELINQUENT, reference)
                results["marked_delinquent"] += 1
            elif not seriously_overdue and transaction.status == TransactionStatus.DELINQUENT:
                self.set_status(transaction, TransactionStatus.ACTIVE, reference)
                results["restored_active"] += 1

        return results

    def installments_for(self, transaction_id: str) -> List[Installment]:
        return self.installments.list_for_transaction(transaction_id)

    def _save_transaction(self, transaction: Transaction) -> None:
        self.storage.save(self.table_name, transaction.id, transaction.to_dict())

    def _transaction_from_dict(self, data: Dict) -> Transaction:
        return Transaction(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            customer_id=data['customer_id'],
            kind=TransactionKind(data['kind']),
            principal=to_amount(data['principal']),
            interest_rate=Decimal(str(data.get('interest_rate') or '0')),
            total=to_amount(data['total']),
            payment_plan=PaymentPlan(data['payment_plan']),
            installment_count=int(data['installment_count']),
            installment_amount=to_amount(data.get('installment_amount') or ZERO),
            start_date=parse_local_date(data['start_date']),
            status=TransactionStatus(data.get('status', TransactionStatus.ACTIVE.value)),
            product_id=data.get('product_id'),
            description=data.get('description'),
            invoice_number=data.get('invoice_number'),
            completed_date=parse_optional_date(data.get('completed_date'))
        )
