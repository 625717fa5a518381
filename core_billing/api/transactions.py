"""
Sale and loan endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, status

from .deps import HANDLED_ERRORS, get_billing_system, http_error
from .schemas import (
    CreateTransactionRequest,
    installment_response,
    summary_response,
    transaction_response,
)
from ..balances import transaction_summary
from ..dates import PaymentPlan, parse_optional_date
from ..system import BillingSystem
from ..transactions import TransactionKind, TransactionStatus


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_transaction(
    request: CreateTransactionRequest,
    system: BillingSystem = Depends(get_billing_system)
):
    """Create a sale or loan with its installment schedule"""
    try:
        transaction = system.transaction_manager.create_transaction(
            customer_id=request.customer_id,
            kind=TransactionKind(request.kind),
            installment_count=request.installment_count,
            payment_plan=PaymentPlan(request.payment_plan),
            start_date=request.start_date,
            principal=request.principal,
            interest_rate=request.interest_rate,
            product_id=request.product_id,
            description=request.description,
            invoice_number=request.invoice_number,
            user_id=system.user_id
        )
        installments = system.transaction_manager.installments_for(transaction.id)
        return {
            "transaction_id": transaction.id,
            "transaction": transaction_response(transaction),
            "installments": [installment_response(installment, transaction) for installment in installments],
            "message": "Transaction created successfully"
        }

    except HANDLED_ERRORS as e:
        raise http_error(e)


@router.get("")
async def list_transactions(
    status: Optional[str] = None,
    system: BillingSystem = Depends(get_billing_system)
):
    """List transactions, newest start date first"""
    try:
        transactions = system.transaction_manager.list_transactions(
            TransactionStatus(status) if status else None
        )
        return {"transactions": [transaction_response(transaction) for transaction in transactions]}

    except HANDLED_ERRORS as e:
        raise http_error(e)


@router.post("/mark-delinquent")
async def mark_delinquent(
    as_of: Optional[str] = None,
    system: BillingSystem = Depends(get_billing_system)
):
    """Flag transactions overdue past the grace period"""
    try:
        return system.transaction_manager.mark_delinquent_transactions(
            grace_days=system.config.delinquency_grace_days,
            today=parse_optional_date(as_of)
        )

    except HANDLED_ERRORS as e:
        raise http_error(e)


@router.get("/{transaction_id}")
async def get_transaction(
    transaction_id: str,
    system: BillingSystem = Depends(get_billing_system)
):
    """Get a transaction with its installments and payment summary"""
    try:
        transaction = system.transaction_manager.require_transaction(transaction_id)
        installments = system.transaction_manager.installments_for(transaction_id)
        return {
            "transaction": transaction_response(transaction),
            "installments": [installment_response(installment, transaction) for installment in installments],
            "summary": summary_response(transaction_summary(transaction, installments))
        }

    except HANDLED_ERRORS as e:
        raise http_error(e)


@router.delete("/{transaction_id}")
async def delete_transaction(
    transaction_id: str,
    system: BillingSystem = Depends(get_billing_system)
):
    """Delete a transaction and its installments"""
    try:
        removed = system.transaction_manager.delete_transaction(transaction_id, user_id=system.user_id)
        return {"message": "Transaction deleted successfully", "installments_removed": removed}

    except HANDLED_ERRORS as e:
        raise http_error(e)
