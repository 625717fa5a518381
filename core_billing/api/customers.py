"""
Customer management endpoints
"""

from typing import Optional
from fastapi import APIRouter, HTTPException, Depends, status

from .deps import HANDLED_ERRORS, get_billing_system, http_error
from .schemas import (
    CreateCustomerRequest,
    UpdateCustomerRequest,
    customer_response,
    transaction_response,
)
from ..system import BillingSystem


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_customer(
    request: CreateCustomerRequest,
    system: BillingSystem = Depends(get_billing_system)
):
    """Create a new customer"""
    try:
        customer = system.customer_manager.create_customer(
            first_name=request.first_name,
            last_name=request.last_name,
            document=request.document,
            phone=request.phone,
            email=request.email,
            address=request.address,
            notes=request.notes,
            user_id=system.user_id
        )
        return {"customer_id": customer.id, "message": "Customer created successfully"}

    except HANDLED_ERRORS as e:
        raise http_error(e)


@router.get("")
async def list_customers(
    q: Optional[str] = None,
    system: BillingSystem = Depends(get_billing_system)
):
    """List customers, optionally searching name, surname and document"""
    customers = system.customer_manager.search_customers(q) if q else system.customer_manager.list_customers()
    return {"customers": [customer_response(customer) for customer in customers]}


@router.get("/{customer_id}")
async def get_customer(
    customer_id: str,
    system: BillingSystem = Depends(get_billing_system)
):
    """Get customer by ID"""
    customer = system.customer_manager.get_customer(customer_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")

    return customer_response(customer)


@router.put("/{customer_id}")
async def update_customer(
    customer_id: str,
    request: UpdateCustomerRequest,
    system: BillingSystem = Depends(get_billing_system)
):
    """Update customer information"""
    try:
        customer = system.customer_manager.update_customer(
            customer_id=customer_id,
            first_name=request.first_name,
            last_name=request.last_name,
            document=request.document,
            phone=request.phone,
            email=request.email,
            address=request.address,
            notes=request.notes,
            user_id=system.user_id
        )
        return customer_response(customer)

    except HANDLED_ERRORS as e:
        raise http_error(e)


@router.delete("/{customer_id}")
async def delete_customer(
    customer_id: str,
    system: BillingSystem = Depends(get_billing_system)
):
    """Delete a customer with no transactions"""
    try:
        system.customer_manager.delete_customer(customer_id, user_id=system.user_id)
        return {"message": "Customer deleted successfully"}

    except HANDLED_ERRORS as e:
        raise http_error(e)


@router.get("/{customer_id}/transactions")
async def get_customer_transactions(
    customer_id: str,
    system: BillingSystem = Depends(get_billing_system)
):
    """Get all transactions of a customer"""
    try:
        system.customer_manager.require_customer(customer_id)
        transactions = system.transaction_manager.list_for_customer(customer_id)
        return {"transactions": [transaction_response(transaction) for transaction in transactions]}

    except HANDLED_ERRORS as e:
        raise http_error(e)
