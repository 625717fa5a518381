"""
Collection notice endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from .deps import HANDLED_ERRORS, get_billing_system, http_error
from .schemas import notice_response
from ..dates import parse_optional_date
from ..system import BillingSystem


router = APIRouter()


@router.get("/upcoming")
async def upcoming_notices(
    window_days: Optional[int] = Query(None, ge=0),
    as_of: Optional[str] = None,
    system: BillingSystem = Depends(get_billing_system)
):
    """Unpaid installments due within the window, overdue ones included"""
    try:
        notices = system.collection_notices.upcoming(
            window_days=window_days, today=parse_optional_date(as_of)
        )
        return {"notices": [notice_response(notice) for notice in notices]}

    except HANDLED_ERRORS as e:
        raise http_error(e)
