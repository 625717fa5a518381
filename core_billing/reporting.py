"""
Reporting Module

Dashboard figures and the delinquency report, computed from stored
transactions and installments on every call.
"""

from datetime import date
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Dict, List, Optional
import csv
import io

from .balances import (
    DashboardMetrics, compute_dashboard_metrics, installment_owed_amount, reported_remaining,
    transaction_outstanding_balance,
)
from .customers import CustomerManager
from .dates import days_until, today as local_today
from .installments import InstallmentRepository
from .transactions import TransactionManager


@dataclass
class DelinquentInstallment:
    """Row of the delinquency report"""
    installment_id: str
    installment_number: int
    transaction_id: str
    customer_id: str
    customer_name: str
    customer_document: str
    customer_phone: Optional[str]
    due_date: date
    days_overdue: int
    owed: Decimal
    remaining: Decimal


class ReportingService:
    """
    Collections reporting
    """

    def __init__(
        self,
        customers: CustomerManager,
        transactions: TransactionManager,
        installments: InstallmentRepository,
        due_soon_days: int = 7,
        delinquency_min_days: int = 7
    ):
        self.customers = customers
        self.transactions = transactions
        self.installments = installments
        self.due_soon_days = due_soon_days
        self.delinquency_min_days = delinquency_min_days

    def dashboard(self, today: Optional[date] = None) -> DashboardMetrics:
        transactions = self.transactions.list_transactions()
        installments = {
            transaction.id: self.installments.list_for_transaction(transaction.id)
            for transaction in transactions
        }
        return compute_dashboard_metrics(
            total_customers=len(self.customers.list_customers()),
            transactions=transactions,
            installments_by_transaction=installments,
            today=today,
            upcoming_window=self.due_soon_days
        )

    def delinquency_report(self, min_days_overdue: Optional[int] = None,
                           today: Optional[date] = None) -> List[DelinquentInstallment]:
        """
        Unpaid installments overdue by at least min_days_overdue days,
        longest overdue first.
        """
        reference = today or local_today()
        threshold = self.delinquency_min_days if min_days_overdue is None else min_days_overdue

        rows = []
        for installment in self.installments.list_unpaid(due_on_or_before=reference):
            days_overdue = -days_until(installment.due_date, reference)
            if days_overdue < threshold:
                continue
            transaction = self.transactions.get_transaction(installment.transaction_id)
            if transaction is None:
                continue
            customer = self.customers.get_customer(transaction.customer_id)
            rows.append(DelinquentInstallment(
                installment_id=installment.id,
                installment_number=installment.number,
                transaction_id=transaction.id,
                customer_id=transaction.customer_id,
                customer_name=customer.full_name if customer else "",
                customer_document=customer.document if customer else "",
                customer_phone=customer.phone if customer else None,
                due_date=installment.due_date,
                days_overdue=days_overdue,
                owed=installment_owed_amount(installment, transaction),
                remaining=reported_remaining(installment, transaction)
            ))

        return rows

    def export_delinquency_csv(self, rows: List[DelinquentInstallment]) -> str:
        """Delinquency report as CSV text"""
        output = io.StringIO()
        if rows:
            headers = list(asdict(rows[0]).keys())
            writer = csv.DictWriter(output, fieldnames=headers)
            writer.writeheader()
            for row in rows:
                writer.writerow({key: str(value) if value is not None else "" for key, value in asdict(row).items()})
        csv_content = output.getvalue()
        output.close()
        return csv_content

    def customer_balances(self) -> Dict[str, Decimal]:
        """Outstanding balance per customer id"""
        balances: Dict[str, Decimal] = {}
        for transaction in self.transactions.list_transactions():
            outstanding = transaction_outstanding_balance(
                transaction, self.installments.list_for_transaction(transaction.id)
            )
            balances[transaction.customer_id] = balances.get(transaction.customer_id, Decimal('0.00')) + outstanding
        return balances
