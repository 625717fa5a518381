"""
Dashboard and delinquency report endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from .deps import HANDLED_ERRORS, get_billing_system, http_error
from .schemas import delinquent_response, metrics_response
from ..dates import parse_optional_date
from ..system import BillingSystem


router = APIRouter()


@router.get("")
async def get_dashboard(
    as_of: Optional[str] = None,
    system: BillingSystem = Depends(get_billing_system)
):
    """Headline collection figures"""
    try:
        metrics = system.reporting_service.dashboard(today=parse_optional_date(as_of))
        return metrics_response(metrics)

    except HANDLED_ERRORS as e:
        raise http_error(e)


@router.get("/delinquency")
async def delinquency_report(
    min_days: Optional[int] = Query(None, ge=0),
    as_of: Optional[str] = None,
    system: BillingSystem = Depends(get_billing_system)
):
    """Installments overdue by at least min_days"""
    try:
        rows = system.reporting_service.delinquency_report(
            min_days_overdue=min_days, today=parse_optional_date(as_of)
        )
        return {"installments": [delinquent_response(row) for row in rows]}

    except HANDLED_ERRORS as e:
        raise http_error(e)


@router.get("/delinquency.csv", response_class=PlainTextResponse)
async def delinquency_report_csv(
    min_days: Optional[int] = Query(None, ge=0),
    as_of: Optional[str] = None,
    system: BillingSystem = Depends(get_billing_system)
):
    """Delinquency report as CSV"""
    try:
        rows = system.reporting_service.delinquency_report(
            min_days_overdue=min_days, today=parse_optional_date(as_of)
        )
        return system.reporting_service.export_delinquency_csv(rows)

    except HANDLED_ERRORS as e:
        raise http_error(e)
