"""
Balance & Arrears Calculator Module

Pure functions over installments and transactions: the amount owed on an
installment, how close it is to its due date, what is left to pay, and the
aggregates the collections dashboard shows. Nothing here writes to storage
and outstanding balances are always recomputed, never cached.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

from .dates import days_until, month_start, today as local_today
from .installments import Installment, InstallmentStatus
from .money import ZERO
from .transactions import Transaction


class DueClassification(Enum):
    """Where an unpaid installment sits relative to today"""
    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    UPCOMING = "upcoming"


def resolve_base_amount(installment: Installment, transaction: Optional[Transaction] = None) -> Decimal:
    """
    Amount an installment was scheduled for: the reschedule override if one
    is set, else the generated amount, else the transaction's per-installment amount.
    """
    if installment.override_amount is not None and installment.override_amount > 0:
        return installment.override_amount
    if installment.amount and installment.amount > 0:
        return installment.amount
    if transaction is not None:
        return transaction.installment_amount
    return ZERO


def installment_owed_amount(installment: Installment, transaction: Optional[Transaction] = None) -> Decimal:
    """
    Total owed on an installment.

    An override already carries the arrears interest added when it was
    rescheduled, so it is returned as is; otherwise interest is added on top
    of the base amount.
    """
    if installment.override_amount is not None and installment.override_amount > 0:
        return installment.override_amount
    return resolve_base_amount(installment, transaction) + (installment.arrears_interest or ZERO)


def classify(installment: Installment, today: Optional[date] = None) -> DueClassification:
    """
    Classify an unpaid installment by due-date proximity.

    Raises:
        ValueError: the installment is already paid
    """
    if installment.status == InstallmentStatus.PAID:
        raise ValueError(f"Installment {installment.id} is paid and has no due classification")

    days = days_until(installment.due_date, today)
    if days < 0:
        return DueClassification.OVERDUE
    if days == 0:
        return DueClassification.DUE_TODAY
    return DueClassification.UPCOMING


def is_due_soon(installment: Installment, today: Optional[date] = None, window: int = 7) -> bool:
    """Unpaid and due between today and today + window days"""
    if installment.status == InstallmentStatus.PAID:
        return False
    return 0 <= days_until(installment.due_date, today) <= window


def remaining(installment: Installment, transaction: Optional[Transaction] = None) -> Decimal:
    """owed - amount_paid; may be negative for inconsistent data"""
    return installment_owed_amount(installment, transaction) - installment.amount_paid


def reported_remaining(installment: Installment, transaction: Optional[Transaction] = None) -> Decimal:
    """remaining() floored at zero, for display"""
    return max(remaining(installment, transaction), ZERO)


def transaction_outstanding_balance(transaction: Optional[Transaction],
                                    installments: Iterable[Installment]) -> Decimal:
    """Sum of remaining() over every installment that is not paid"""
    return sum(
        (remaining(installment, transaction)
         for installment in installments if installment.status != InstallmentStatus.PAID),
        ZERO
    )


def _percentage(part: Decimal, whole: Decimal) -> Decimal:
    if not whole:
        return ZERO
    return (Decimal(part) / Decimal(whole) * 100).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)


@dataclass
class TransactionSummary:
    """Payment progress of one transaction"""
    transaction_id: str
    total: Decimal
    total_paid: Decimal
    total_pending: Decimal
    paid_count: int
    installment_count: int
    percent_paid: Decimal
    next_due: Optional[Installment] = None
    overdue: List[Installment] = field(default_factory=list)


def transaction_summary(transaction: Transaction, installments: Sequence[Installment],
                        today: Optional[date] = None) -> TransactionSummary:
    """Totals, progress, next due installment and overdue installments"""
    total_paid = sum((installment.amount_paid for installment in installments), ZERO)
    unpaid = sorted(
        (installment for installment in installments if installment.status != InstallmentStatus.PAID),
        key=lambda installment: installment.due_date
    )
    return TransactionSummary(
        transaction_id=transaction.id,
        total=transaction.total,
        total_paid=total_paid,
        total_pending=transaction_outstanding_balance(transaction, installments),
        paid_count=sum(1 for installment in installments if installment.status == InstallmentStatus.PAID),
        installment_count=transaction.installment_count,
        percent_paid=_percentage(total_paid, transaction.total),
        next_due=unpaid[0] if unpaid else None,
        overdue=[installment for installment in unpaid if days_until(installment.due_date, today) < 0]
    )


@dataclass
class DashboardMetrics:
    """Headline figures for the collections dashboard"""
    total_customers: int = 0
    sales_this_month: Decimal = ZERO
    collections_this_month: Decimal = ZERO
    overdue_installments: int = 0
    due_today_installments: int = 0
    upcoming_installments: int = 0
    delinquent_customers: int = 0
    urgent_outstanding: Decimal = ZERO    # Outstanding on transactions with something due now
    total_outstanding: Decimal = ZERO

    @property
    def collection_effectiveness(self) -> Decimal:
        """Collections as a percentage of sales this month"""
        return _percentage(self.collections_this_month, self.sales_this_month)

    @property
    def delinquency_rate(self) -> Decimal:
        """Percentage of customers with an overdue installment"""
        return _percentage(Decimal(self.delinquent_customers), Decimal(self.total_customers))

    @property
    def average_outstanding_per_customer(self) -> Decimal:
        if not self.total_customers:
            return ZERO
        return (self.total_outstanding / self.total_customers).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def compute_dashboard_metrics(
    total_customers: int,
    transactions: Sequence[Transaction],
    installments_by_transaction: Dict[str, List[Installment]],
    today: Optional[date] = None,
    upcoming_window: int = 7
) -> DashboardMetrics:
    """Reduce transactions and their installments into DashboardMetrics"""
    reference = today or local_today()
    first_of_month = month_start(reference)
    metrics = DashboardMetrics(total_customers=total_customers)
    delinquent_customers = set()

    for transaction in transactions:
        installments = installments_by_transaction.get(transaction.id, [])

        if first_of_month <= transaction.start_date <= reference:
            metrics.sales_this_month += transaction.total

        outstanding = transaction_outstanding_balance(transaction, installments)
        metrics.total_outstanding += outstanding

        needs_attention = False
        for installment in installments:
            if installment.paid_date and first_of_month <= installment.paid_date <= reference:
                metrics.collections_this_month += installment.amount_paid
            if installment.status == InstallmentStatus.PAID:
                continue

            classification = classify(installment, reference)
            if classification == DueClassification.OVERDUE:
                metrics.overdue_installments += 1
                delinquent_customers.add(transaction.customer_id)
                needs_attention = True
            elif classification == DueClassification.DUE_TODAY:
                metrics.due_today_installments += 1
                needs_attention = True
            elif is_due_soon(installment, reference, upcoming_window):
                metrics.upcoming_installments += 1

        if needs_attention:
            metrics.urgent_outstanding += outstanding

    metrics.delinquent_customers = len(delinquent_customers)
    return metrics
