"""
Account statement endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException

from .deps import HANDLED_ERRORS, get_billing_system, http_error
from .schemas import statement_response
from ..dates import parse_optional_date
from ..statements import EntryKind
from ..system import BillingSystem


router = APIRouter()


@router.get("/{customer_id}")
async def get_statement(
    customer_id: str,
    kind: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    system: BillingSystem = Depends(get_billing_system)
):
    """Customer statement, optionally filtered by entry kind and date range"""
    try:
        statement = system.statement_service.customer_statement(customer_id)
        entries = statement.filter(
            kind=EntryKind(kind) if kind else None,
            start=parse_optional_date(start),
            end=parse_optional_date(end)
        )
        return statement_response(statement, entries)

    except HANDLED_ERRORS as e:
        raise http_error(e)


@router.post("/{customer_id}/entries/{entry_id}/revert")
async def revert_entry(
    customer_id: str,
    entry_id: str,
    system: BillingSystem = Depends(get_billing_system)
):
    """Delete a sale or undo a payment. Irreversible."""
    try:
        statement = system.statement_service.customer_statement(customer_id)
        entry = next((item for item in statement.entries if item.entry_id == entry_id), None)
        if entry is None:
            raise HTTPException(status_code=404, detail="Statement entry not found")

        system.statement_service.revert_entry(entry, user_id=system.user_id)
        return {"message": f"{entry.kind.value.capitalize()} entry reverted", "entry_id": entry_id}

    except HANDLED_ERRORS as e:
        raise http_error(e)
