"""
Installment endpoints: payments, reschedules and arrears interest suggestions
"""

from typing import Optional
from fastapi import APIRouter, Depends

from .deps import HANDLED_ERRORS, get_billing_system, http_error
from .schemas import PaymentRequest, RescheduleRequest, installment_response, payment_response
from ..dates import parse_optional_date
from ..installments import PaymentMethod
from ..system import BillingSystem


router = APIRouter()


@router.get("/{installment_id}")
async def get_installment(
    installment_id: str,
    system: BillingSystem = Depends(get_billing_system)
):
    """Get installment by ID"""
    try:
        installment = system.installments.require(installment_id)
        transaction = system.transaction_manager.get_transaction(installment.transaction_id)
        return installment_response(installment, transaction)

    except HANDLED_ERRORS as e:
        raise http_error(e)


@router.post("/{installment_id}/pay")
async def pay_installment(
    installment_id: str,
    request: PaymentRequest,
    system: BillingSystem = Depends(get_billing_system)
):
    """Register a payment and return the receipt data"""
    try:
        result = system.payment_reconciler.apply_payment(
            installment_id,
            amount=request.amount,
            payment_date=request.payment_date,
            method=PaymentMethod(request.method),
            notes=request.notes,
            user_id=system.user_id
        )
        return payment_response(result)

    except HANDLED_ERRORS as e:
        raise http_error(e)


@router.post("/{installment_id}/reschedule")
async def reschedule_installment(
    installment_id: str,
    request: RescheduleRequest,
    system: BillingSystem = Depends(get_billing_system)
):
    """Move an installment to a new due date, adding arrears interest"""
    try:
        installment = system.reschedule_engine.reschedule(
            installment_id,
            new_due_date=request.new_due_date,
            arrears_interest=request.arrears_interest,
            reason=request.reason,
            user_id=system.user_id
        )
        transaction = system.transaction_manager.get_transaction(installment.transaction_id)
        return installment_response(installment, transaction)

    except HANDLED_ERRORS as e:
        raise http_error(e)


@router.get("/{installment_id}/suggested-interest")
async def suggested_interest(
    installment_id: str,
    as_of: Optional[str] = None,
    system: BillingSystem = Depends(get_billing_system)
):
    """Arrears interest suggested for an overdue installment"""
    try:
        suggestion = system.reschedule_engine.suggest(installment_id, today=parse_optional_date(as_of))
        return {
            "installment_id": suggestion.installment_id,
            "owed_base": str(suggestion.owed_base),
            "days_until_due": suggestion.days_until_due,
            "suggested_interest": str(suggestion.suggested_interest)
        }

    except HANDLED_ERRORS as e:
        raise http_error(e)
