"""
Pydantic schemas for API requests, and response builders
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from ..balances import (
    DashboardMetrics, TransactionSummary, installment_owed_amount, reported_remaining,
)
from ..customers import Customer
from ..installments import Installment
from ..notifications import CollectionNotice
from ..payments import PaymentResult
from ..products import Product
from ..reporting import DelinquentInstallment
from ..statements import AccountStatement, LedgerEntry
from ..transactions import Transaction


# Customer schemas
class CreateCustomerRequest(BaseModel):
    first_name: str
    last_name: str = ""
    document: str = Field(..., description="National ID / tax ID, unique per business")
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None


class UpdateCustomerRequest(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    document: Optional[str] = Field(None, description="Rejected if it differs from the stored document")
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None


# Product schemas
class CreateProductRequest(BaseModel):
    name: str
    unit_price: str = Field(..., description="Decimal amount as string")
    category: str = Field("appliance", description="Product category (appliance, loan)")
    description: Optional[str] = None
    stock: int = 0


class UpdateProductRequest(BaseModel):
    name: Optional[str] = None
    unit_price: Optional[str] = None  # Decimal as string
    category: Optional[str] = None
    description: Optional[str] = None
    stock: Optional[int] = None


# Transaction schemas
class CreateTransactionRequest(BaseModel):
    customer_id: str
    kind: str = Field("sale", description="Transaction kind (sale, loan)")
    installment_count: int = Field(..., gt=0)
    payment_plan: str = Field("monthly", description="Payment plan (weekly, biweekly, monthly)")
    start_date: str  # ISO date string
    principal: Optional[str] = None  # Decimal as string; sales default to the product price
    interest_rate: str = "0"  # Flat percentage as string
    product_id: Optional[str] = None
    description: Optional[str] = None
    invoice_number: Optional[str] = None


# Installment schemas
class PaymentRequest(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")
    payment_date: Optional[str] = None  # ISO date string, defaults to today
    method: str = Field("cash", description="Payment method (cash, transfer, check, card)")
    notes: Optional[str] = None


class RescheduleRequest(BaseModel):
    new_due_date: Optional[str] = None  # ISO date string
    arrears_interest: str = "0"  # Decimal as string
    reason: Optional[str] = None


# Response builders
def customer_response(customer: Customer) -> Dict[str, Any]:
    return {
        "id": customer.id,
        "first_name": customer.first_name,
        "last_name": customer.last_name,
        "full_name": customer.full_name,
        "document": customer.document,
        "phone": customer.phone,
        "email": customer.email,
        "address": customer.address,
        "notes": customer.notes,
        "created_at": customer.created_at.isoformat()
    }


def product_response(product: Product) -> Dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "unit_price": str(product.unit_price),
        "category": product.category.value,
        "stock": product.stock
    }


def installment_response(installment: Installment,
                         transaction: Optional[Transaction] = None) -> Dict[str, Any]:
    return {
        "id": installment.id,
        "transaction_id": installment.transaction_id,
        "number": installment.number,
        "amount": str(installment.amount),
        "override_amount": str(installment.override_amount) if installment.override_amount is not None else None,
        "arrears_interest": str(installment.arrears_interest),
        "owed": str(installment_owed_amount(installment, transaction)),
        "amount_paid": str(installment.amount_paid),
        "remaining": str(reported_remaining(installment, transaction)),
        "due_date": installment.due_date.isoformat(),
        "status": installment.status.value,
        "paid_date": installment.paid_date.isoformat() if installment.paid_date else None,
        "payment_method": installment.payment_method.value if installment.payment_method else None,
        "receipt_number": installment.receipt_number,
        "notes": installment.notes,
        "rescheduled_on": installment.rescheduled_on.isoformat() if installment.rescheduled_on else None,
        "reschedule_reason": installment.reschedule_reason
    }


def transaction_response(transaction: Transaction) -> Dict[str, Any]:
    return {
        "id": transaction.id,
        "customer_id": transaction.customer_id,
        "product_id": transaction.product_id,
        "kind": transaction.kind.value,
        "principal": str(transaction.principal),
        "interest_rate": str(transaction.interest_rate),
        "total": str(transaction.total),
        "payment_plan": transaction.payment_plan.value,
        "installment_count": transaction.installment_count,
        "installment_amount": str(transaction.installment_amount),
        "start_date": transaction.start_date.isoformat(),
        "status": transaction.status.value,
        "description": transaction.description,
        "invoice_number": transaction.invoice_number
    }


def summary_response(summary: TransactionSummary) -> Dict[str, Any]:
    return {
        "total": str(summary.total),
        "total_paid": str(summary.total_paid),
        "total_pending": str(summary.total_pending),
        "paid_count": summary.paid_count,
        "installment_count": summary.installment_count,
        "percent_paid": str(summary.percent_paid),
        "next_due_installment_id": summary.next_due.id if summary.next_due else None,
        "next_due_date": summary.next_due.due_date.isoformat() if summary.next_due else None,
        "overdue_installment_ids": [installment.id for installment in summary.overdue]
    }


def payment_response(result: PaymentResult) -> Dict[str, Any]:
    receipt = result.receipt
    return {
        "installment": installment_response(result.installment, result.transaction),
        "transaction_status": result.transaction.status.value,
        "transaction_completed": result.transaction_completed,
        "receipt": {
            "receipt_number": receipt.receipt_number,
            "payment_date": receipt.payment_date.isoformat(),
            "customer_id": receipt.customer_id,
            "customer_name": receipt.customer_name,
            "customer_document": receipt.customer_document,
            "transaction_id": receipt.transaction_id,
            "installment_number": receipt.installment_number,
            "installment_count": receipt.installment_count,
            "amount": str(receipt.amount),
            "amount_applied": str(receipt.amount_applied),
            "cumulative_paid": str(receipt.cumulative_paid),
            "remaining": str(receipt.remaining),
            "payment_method": receipt.payment_method.value,
            "status": receipt.status.value,
            "notes": receipt.notes
        }
    }


def ledger_entry_response(entry: LedgerEntry) -> Dict[str, Any]:
    return {
        "entry_id": entry.entry_id,
        "date": entry.entry_date.isoformat(),
        "kind": entry.kind.value,
        "description": entry.description,
        "reference": entry.reference,
        "debit": str(entry.debit),
        "credit": str(entry.credit),
        "balance": str(entry.balance),
        "transaction_id": entry.transaction_id,
        "installment_id": entry.installment_id
    }


def statement_response(statement: AccountStatement, entries: List[LedgerEntry]) -> Dict[str, Any]:
    return {
        "entries": [ledger_entry_response(entry) for entry in entries],
        "total_debits": str(statement.total_debits),
        "total_credits": str(statement.total_credits),
        "current_balance": str(statement.current_balance)
    }


def notice_response(notice: CollectionNotice) -> Dict[str, Any]:
    return {
        "installment_id": notice.installment_id,
        "installment_number": notice.installment_number,
        "installment_count": notice.installment_count,
        "transaction_id": notice.transaction_id,
        "customer_id": notice.customer_id,
        "customer_name": notice.customer_name,
        "due_date": notice.due_date.isoformat(),
        "days_until_due": notice.days_until_due,
        "classification": notice.classification.value,
        "owed": str(notice.owed),
        "remaining": str(notice.remaining),
        "transaction_outstanding": str(notice.transaction_outstanding),
        "phone": notice.phone,
        "email": notice.email,
        "whatsapp_link": notice.whatsapp_link,
        "email_link": notice.email_link
    }


def metrics_response(metrics: DashboardMetrics) -> Dict[str, Any]:
    return {
        "total_customers": metrics.total_customers,
        "sales_this_month": str(metrics.sales_this_month),
        "collections_this_month": str(metrics.collections_this_month),
        "overdue_installments": metrics.overdue_installments,
        "due_today_installments": metrics.due_today_installments,
        "upcoming_installments": metrics.upcoming_installments,
        "delinquent_customers": metrics.delinquent_customers,
        "urgent_outstanding": str(metrics.urgent_outstanding),
        "total_outstanding": str(metrics.total_outstanding),
        "collection_effectiveness": str(metrics.collection_effectiveness),
        "delinquency_rate": str(metrics.delinquency_rate),
        "average_outstanding_per_customer": str(metrics.average_outstanding_per_customer)
    }


def delinquent_response(row: DelinquentInstallment) -> Dict[str, Any]:
    return {
        "installment_id": row.installment_id,
        "installment_number": row.installment_number,
        "transaction_id": row.transaction_id,
        "customer_id": row.customer_id,
        "customer_name": row.customer_name,
        "customer_document": row.customer_document,
        "customer_phone": row.customer_phone,
        "due_date": row.due_date.isoformat(),
        "days_overdue": row.days_overdue,
        "owed": str(row.owed),
        "remaining": str(row.remaining)
    }
