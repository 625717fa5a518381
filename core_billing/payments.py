"""
Payment Reconciliation Module

Applies a cashier's payment to one installment, caps it at what is owed,
mints a receipt, and completes the transaction once every installment is paid.
"""

from datetime import date, datetime, timezone
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
import logging
import threading
import time
import uuid

from .audit import AuditTrail, AuditEventType
from .balances import installment_owed_amount, reported_remaining
from .customers import CustomerManager
from .dates import parse_optional_date, today as local_today
from .errors import ValidationError
from .installments import Installment, InstallmentRepository, InstallmentStatus, PaymentMethod
from .money import ZERO, to_amount
from .storage import StorageInterface
from .transactions import Transaction, TransactionManager, TransactionStatus


logger = logging.getLogger(__name__)


@dataclass
class Receipt:
    """Data a printed receipt needs; rendering happens elsewhere"""
    receipt_number: str
    payment_date: date
    customer_id: str
    customer_name: str
    customer_document: str
    transaction_id: str
    installment_id: str
    installment_number: int
    installment_count: int
    amount: Decimal              # Amount handed over in this payment
    amount_applied: Decimal      # Part of it that settled debt
    cumulative_paid: Decimal     # Installment total paid so far
    remaining: Decimal
    payment_method: PaymentMethod
    status: InstallmentStatus
    notes: Optional[str] = None


@dataclass
class PaymentResult:
    installment: Installment
    transaction: Transaction
    receipt: Receipt
    transaction_completed: bool = False

    @property
    def excess(self) -> Decimal:
        """Overpayment that was not applied"""
        return self.receipt.amount - self.receipt.amount_applied


def generate_receipt_number(prefix: str = "REC") -> str:
    """PREFIX-<epoch milliseconds>-<random suffix>; unique per call"""
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6].upper()}"


class PaymentReconciler:
    """
    Registers payments against installments
    """

    def __init__(
        self,
        storage: StorageInterface,
        audit_trail: AuditTrail,
        installments: InstallmentRepository,
        transactions: TransactionManager,
        customers: CustomerManager,
        receipt_prefix: str = "REC",
        lock: Optional[threading.RLock] = None
    ):
        self.storage = storage
        self.audit_trail = audit_trail
        self.installments = installments
        self.transactions = transactions
        self.customers = customers
        self.receipt_prefix = receipt_prefix
        self._lock = lock or threading.RLock()

    def apply_payment(
        self,
        installment_id: str,
        amount,
        payment_date=None,
        method: PaymentMethod = PaymentMethod.CASH,
        notes: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> PaymentResult:
        """
        Apply a payment to an installment

        A payment covering what is left settles the installment and any excess
        is dropped; a smaller one accumulates as a partial payment.

        Raises:
            ValidationError: amount is not positive or the installment is already paid
            NotFoundError: unknown installment or transaction
        """
        amount = to_amount(amount)
        if amount <= 0:
            raise ValidationError("Payment amount must be positive")
        method = PaymentMethod(method)
        paid_on = parse_optional_date(payment_date) or local_today()

        with self._lock, self.storage.atomic():
            installment = self.installments.require(installment_id)
            if installment.status == InstallmentStatus.PAID:
                raise ValidationError(f"Installment {installment_id} is already paid")

            transaction = self.transactions.require_transaction(installment.transaction_id)

            owed = installment_owed_amount(installment, transaction)
            remaining_before = owed - installment.amount_paid

            if amount >= remaining_before:
                applied = max(remaining_before, ZERO)
                installment.status = InstallmentStatus.PAID
                installment.amount_paid = owed
            else:
                applied = amount
                installment.status = InstallmentStatus.PARTIAL
                installment.amount_paid += amount

            installment.paid_date = paid_on
            installment.payment_method = method
            installment.receipt_number = generate_receipt_number(self.receipt_prefix)
            if notes is not None:
                installment.notes = notes
            installment.updated_at = datetime.now(timezone.utc)
            self.installments.save(installment)

            completed = self._complete_if_settled(transaction, paid_on, user_id)

        customer = self.customers.get_customer(transaction.customer_id)
        receipt = Receipt(
            receipt_number=installment.receipt_number,
            payment_date=paid_on,
            customer_id=transaction.customer_id,
            customer_name=customer.full_name if customer else "",
            customer_document=customer.document if customer else "",
            transaction_id=transaction.id,
            installment_id=installment.id,
            installment_number=installment.number,
            installment_count=transaction.installment_count,
            amount=amount,
            amount_applied=applied,
            cumulative_paid=installment.amount_paid,
            remaining=reported_remaining(installment, transaction),
            payment_method=method,
            status=installment.status,
            notes=notes
        )

        self.audit_trail.log_event(
            event_type=AuditEventType.PAYMENT_REGISTERED,
            entity_type="installment",
            entity_id=installment.id,
            metadata={
                "transaction_id": transaction.id,
                "receipt_number": receipt.receipt_number,
                "amount": amount,
                "amount_applied": applied,
                "amount_paid": installment.amount_paid,
                "status": installment.status,
                "payment_method": method
            },
            user_id=user_id
        )
        logger.info(
            "Payment %s registered on installment %s: %s (%s)",
            receipt.receipt_number, installment.id, applied, installment.status.value
        )

        return PaymentResult(
            installment=installment,
            transaction=transaction,
            receipt=receipt,
            transaction_completed=completed
        )

    def _complete_if_settled(self, transaction: Transaction, as_of: date,
                             user_id: Optional[str]) -> bool:
        """Mark the transaction completed once every installment is paid"""
        siblings = self.installments.list_for_transaction(transaction.id)
        paid_count = sum(1 for sibling in siblings if sibling.status == InstallmentStatus.PAID)
        if paid_count >= transaction.installment_count and transaction.status != TransactionStatus.COMPLETED:
            self.transactions.set_status(transaction, TransactionStatus.COMPLETED, as_of, user_id)
            logger.info("Transaction %s completed", transaction.id)
            return True
        return False
