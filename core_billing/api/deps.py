"""
Request dependencies: the per-request billing system and error mapping
"""

from typing import Optional

from fastapi import Header, HTTPException, Request

from ..errors import BillingError, ConstraintError, NotFoundError
from ..system import BillingSystem
from ..tenancy import SessionContext


# Errors a route turns into an HTTP response; anything else is a server error
HANDLED_ERRORS = (BillingError, ValueError, PermissionError)


def get_billing_system(
    request: Request,
    x_tenant_id: Optional[str] = Header(None),
    x_user_id: Optional[str] = Header(None)
) -> BillingSystem:
    """
    Billing system scoped to the tenant named in the X-Tenant-ID header

    A request without the header acts as super-admin and sees every
    tenant's records. Set require_tenant_header (BILLING_REQUIRE_TENANT_HEADER)
    to reject such requests with 400 instead.
    """
    state = request.app.state
    if not x_tenant_id and state.config.require_tenant_header:
        raise HTTPException(status_code=400, detail="X-Tenant-ID header is required")
    context = SessionContext(tenant_id=x_tenant_id or None, user_id=x_user_id or None)
    return BillingSystem(state.storage, context=context, config=state.config, lock=state.lock)


def http_error(error: Exception) -> HTTPException:
    """Map a billing error (or a bad enum value) to its HTTP status"""
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, ConstraintError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, PermissionError):
        return HTTPException(status_code=403, detail=str(error))
    return HTTPException(status_code=400, detail=str(error))
