"""
Account Statement Module

Builds a customer's running-balance ledger: one debit per sale or loan at
its start date and one credit per paid installment at its payment date.
Also reverts ledger entries (delete a sale, undo a payment).
"""

from datetime import date, datetime, timezone
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Sequence
import logging
import threading

from .audit import AuditTrail, AuditEventType
from .customers import CustomerManager
from .errors import ValidationError, NotFoundError
from .installments import Installment, InstallmentRepository, InstallmentStatus
from .money import ZERO
from .storage import StorageInterface
from .transactions import Transaction, TransactionKind, TransactionManager, TransactionStatus


logger = logging.getLogger(__name__)


class EntryKind(Enum):
    SALE = "sale"        # Debit: a sale or loan
    PAYMENT = "payment"  # Credit: a paid installment


@dataclass
class LedgerEntry:
    """One statement line"""
    entry_id: str
    entry_date: date
    kind: EntryKind
    description: str
    reference: str
    debit: Decimal
    credit: Decimal
    transaction_id: str
    installment_id: Optional[str] = None
    balance: Decimal = ZERO


@dataclass
class AccountStatement:
    """Ledger entries in date order with running balances"""
    entries: List[LedgerEntry] = field(default_factory=list)

    @property
    def total_debits(self) -> Decimal:
        return sum((entry.debit for entry in self.entries), ZERO)

    @property
    def total_credits(self) -> Decimal:
        return sum((entry.credit for entry in self.entries), ZERO)

    @property
    def current_balance(self) -> Decimal:
        """Balance after the last entry; positive means the customer owes money"""
        return self.entries[-1].balance if self.entries else ZERO

    def filter(self, kind: Optional[EntryKind] = None, start: Optional[date] = None,
               end: Optional[date] = None) -> List[LedgerEntry]:
        """
        Entries of one kind and/or within [start, end]. Running balances are
        those of the full statement, not recomputed for the subset.
        """
        return [
            entry for entry in self.entries
            if (kind is None or entry.kind == EntryKind(kind))
            and (start is None or entry.entry_date >= start)
            and (end is None or entry.entry_date <= end)
        ]


def _transaction_label(transaction: Transaction, product_names: Dict[str, str]) -> str:
    if transaction.kind == TransactionKind.LOAN:
        return "Cash loan"
    return product_names.get(transaction.product_id or "", "Product")


def build_ledger(
    transactions: Sequence[Transaction],
    installments_by_transaction: Dict[str, List[Installment]],
    product_names: Optional[Dict[str, str]] = None
) -> AccountStatement:
    """
    Build a statement from transactions and their installments.

    Only paid installments with a payment date produce credits. Entries are
    sorted by date; on the same date a debit comes before credits, otherwise
    the original order is kept.
    """
    product_names = product_names or {}
    entries: List[LedgerEntry] = []

    for transaction in transactions:
        label = _transaction_label(transaction, product_names)
        entries.append(LedgerEntry(
            entry_id=f"sale-{transaction.id}",
            entry_date=transaction.start_date,
            kind=EntryKind.SALE,
            description=f"Sale - {label}" if transaction.kind == TransactionKind.SALE else label,
            reference=f"Invoice {transaction.invoice_number or transaction.id[:8]}",
            debit=transaction.total,
            credit=ZERO,
            transaction_id=transaction.id
        ))

        for installment in installments_by_transaction.get(transaction.id, []):
            if installment.status != InstallmentStatus.PAID or not installment.paid_date:
                continue
            entries.append(LedgerEntry(
                entry_id=f"payment-{installment.id}",
                entry_date=installment.paid_date,
                kind=EntryKind.PAYMENT,
                description=f"Installment {installment.number} payment - {label}",
                reference=f"Receipt {installment.receipt_number or installment.id[:8]}",
                debit=ZERO,
                credit=installment.amount_paid,
                transaction_id=transaction.id,
                installment_id=installment.id
            ))

    # sorted() is stable
    entries = sorted(entries, key=lambda entry: (entry.entry_date, entry.kind != EntryKind.SALE))

    balance = ZERO
    for entry in entries:
        balance += entry.debit - entry.credit
        entry.balance = balance

    return AccountStatement(entries=entries)


class StatementService:
    """
    Customer statements and entry reversal
    """

    def __init__(
        self,
        storage: StorageInterface,
        audit_trail: AuditTrail,
        customers: CustomerManager,
        transactions: TransactionManager,
        installments: InstallmentRepository,
        lock: Optional[threading.RLock] = None
    ):
        self.storage = storage
        self.audit_trail = audit_trail
        self.customers = customers
        self.transactions = transactions
        self.installments = installments
        self._lock = lock or threading.RLock()

    def customer_statement(self, customer_id: str) -> AccountStatement:
        """Running-balance statement across every transaction of a customer"""
        self.customers.require_customer(customer_id)
        transactions = self.transactions.list_for_customer(customer_id)
        installments = {
            transaction.id: self.installments.list_for_transaction(transaction.id)
            for transaction in transactions
        }
        product_names = {}
        for transaction in transactions:
            if transaction.product_id and transaction.product_id not in product_names:
                product = self.transactions.product_catalog.get_product(transaction.product_id)
                if product:
                    product_names[product.id] = product.name
        return build_ledger(transactions, installments, product_names)

    def revert_entry(self, entry: LedgerEntry, user_id: Optional[str] = None) -> None:
        """
        Undo a ledger entry. Irreversible.

        A sale entry resets its paid installments to pending and deletes the
        transaction with its installments; a payment entry resets only that
        installment and reopens a completed transaction.
        """
        if entry.kind == EntryKind.SALE:
            self.revert_sale(entry.transaction_id, user_id)
        elif entry.kind == EntryKind.PAYMENT:
            if not entry.installment_id:
                raise ValidationError("Payment entry has no installment")
            self.revert_payment(entry.installment_id, user_id)
        else:
            raise ValidationError(f"Unknown entry kind: {entry.kind}")

    def revert_sale(self, transaction_id: str, user_id: Optional[str] = None) -> None:
        with self._lock, self.storage.atomic():
            transaction = self.transactions.require_transaction(transaction_id)
            for installment in self.installments.list_for_transaction(transaction_id):
                if installment.status == InstallmentStatus.PAID:
                    self._reset_installment(installment)
            self.transactions.delete_transaction(transaction_id, user_id=user_id)

        logger.info("Sale %s reverted for customer %s", transaction_id, transaction.customer_id)

    def revert_payment(self, installment_id: str, user_id: Optional[str] = None) -> Installment:
        with self._lock, self.storage.atomic():
            installment = self.installments.require(installment_id)
            receipt_number = installment.receipt_number
            reverted_amount = installment.amount_paid
            self._reset_installment(installment)

            transaction = self.transactions.get_transaction(installment.transaction_id)
            if transaction is None:
                raise NotFoundError(f"Transaction {installment.transaction_id} not found")
            if transaction.status == TransactionStatus.COMPLETED:
                self.transactions.set_status(transaction, TransactionStatus.ACTIVE, user_id=user_id)

        self.audit_trail.log_event(
            event_type=AuditEventType.PAYMENT_REVERTED,
            entity_type="installment",
            entity_id=installment_id,
            metadata={
                "transaction_id": installment.transaction_id,
                "receipt_number": receipt_number,
                "amount": reverted_amount
            },
            user_id=user_id
        )
        logger.info("Payment on installment %s reverted", installment_id)
        return installment

    def _reset_installment(self, installment: Installment) -> None:
        installment.status = InstallmentStatus.PENDING
        installment.amount_paid = ZERO
        installment.paid_date = None
        installment.receipt_number = None
        installment.payment_method = None
        installment.updated_at = datetime.now(timezone.utc)
        self.installments.save(installment)
