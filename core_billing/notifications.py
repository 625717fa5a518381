"""
Collection Notices Module

Lists installments that need a reminder, with the customer's contact details
and plain contact links. Writing and sending the message is left to the operator.
"""

from datetime import date, timedelta
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional
import logging

from .balances import (
    DueClassification, classify, installment_owed_amount, reported_remaining,
    transaction_outstanding_balance,
)
from .customers import Customer, CustomerManager
from .dates import days_until, today as local_today
from .installments import InstallmentRepository
from .transactions import Transaction, TransactionManager


logger = logging.getLogger(__name__)


@dataclass
class CollectionNotice:
    """Reminder candidate for one unpaid installment"""
    installment_id: str
    installment_number: int
    installment_count: int
    transaction_id: str
    customer_id: str
    customer_name: str
    due_date: date
    days_until_due: int
    classification: DueClassification
    owed: Decimal
    remaining: Decimal
    transaction_outstanding: Decimal
    phone: Optional[str] = None
    email: Optional[str] = None
    whatsapp_link: Optional[str] = None
    email_link: Optional[str] = None


def contact_links(customer: Customer) -> Dict[str, Optional[str]]:
    """wa.me and mailto links for a customer, None where the contact is missing"""
    digits = customer.phone_digits
    return {
        "whatsapp": f"https://wa.me/{digits}" if digits else None,
        "email": f"mailto:{customer.email}" if customer.email else None,
    }


class CollectionNotices:
    """
    Finds installments due soon or overdue
    """

    def __init__(
        self,
        customers: CustomerManager,
        transactions: TransactionManager,
        installments: InstallmentRepository,
        window_days: int = 15
    ):
        self.customers = customers
        self.transactions = transactions
        self.installments = installments
        self.window_days = window_days

    def upcoming(self, window_days: Optional[int] = None,
                 today: Optional[date] = None) -> List[CollectionNotice]:
        """
        Every unpaid installment due on or before today + window_days,
        overdue ones included, earliest due date first.
        """
        reference = today or local_today()
        window = self.window_days if window_days is None else window_days
        horizon = reference + timedelta(days=window)

        transactions: Dict[str, Optional[Transaction]] = {}
        customers: Dict[str, Optional[Customer]] = {}
        notices = []

        for installment in self.installments.list_unpaid(due_on_or_before=horizon):
            transaction_id = installment.transaction_id
            if transaction_id not in transactions:
                transactions[transaction_id] = self.transactions.get_transaction(transaction_id)
            transaction = transactions[transaction_id]
            if transaction is None:
                logger.warning("Installment %s has no transaction on file", installment.id)
                continue

            if transaction.customer_id not in customers:
                customers[transaction.customer_id] = self.customers.get_customer(transaction.customer_id)
            customer = customers[transaction.customer_id]
            if customer is None:
                logger.warning("Transaction %s has no customer on file", transaction.id)
                continue

            links = contact_links(customer)
            notices.append(CollectionNotice(
                installment_id=installment.id,
                installment_number=installment.number,
                installment_count=transaction.installment_count,
                transaction_id=transaction.id,
                customer_id=customer.id,
                customer_name=customer.full_name,
                due_date=installment.due_date,
                days_until_due=days_until(installment.due_date, reference),
                classification=classify(installment, reference),
                owed=installment_owed_amount(installment, transaction),
                remaining=reported_remaining(installment, transaction),
                transaction_outstanding=transaction_outstanding_balance(
                    transaction, self.installments.list_for_transaction(transaction.id)
                ),
                phone=customer.phone,
                email=customer.email,
                whatsapp_link=links["whatsapp"],
                email_link=links["email"]
            ))

        return notices
