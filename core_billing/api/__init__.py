"""
Billing API Application Factory
"""

import threading
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .customers import router as customers_router
from .products import router as products_router
from .transactions import router as transactions_router
from .installments import router as installments_router
from .statements import router as statements_router
from .notifications import router as notifications_router
from .dashboard import router as dashboard_router
from .. import __version__
from ..config import BillingConfig, get_config
from ..storage import StorageInterface, create_storage


def create_app(storage: Optional[StorageInterface] = None,
               config: Optional[BillingConfig] = None) -> FastAPI:
    """
    Create and configure the FastAPI application

    Requests are scoped by the X-Tenant-ID header. Without it a request has
    super-admin visibility across tenants unless config.require_tenant_header
    is set.
    """
    config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Close the record store on shutdown"""
        yield
        app.state.storage.close()

    app = FastAPI(
        title="Billing & Collections API",
        description="Installment sales, loans, payment schedules and collections",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    app.state.config = config
    app.state.storage = storage if storage is not None else create_storage(config.database_url)
    app.state.lock = threading.RLock()

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(customers_router, prefix="/customers", tags=["Customers"])
    app.include_router(products_router, prefix="/products", tags=["Products"])
    app.include_router(transactions_router, prefix="/transactions", tags=["Transactions"])
    app.include_router(installments_router, prefix="/installments", tags=["Installments"])
    app.include_router(statements_router, prefix="/statements", tags=["Statements"])
    app.include_router(notifications_router, prefix="/notifications", tags=["Notifications"])
    app.include_router(dashboard_router, prefix="/dashboard", tags=["Dashboard"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "core_billing_api",
            "version": __version__
        }

    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "Billing & Collections API",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "customers": "/customers",
                "products": "/products",
                "transactions": "/transactions",
                "installments": "/installments",
                "statements": "/statements",
                "notifications": "/notifications",
                "dashboard": "/dashboard",
            }
        }

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False):
    """Run the FastAPI server"""
    config = get_config()
    uvicorn.run(
        "core_billing.api:create_app",
        factory=True,
        host=host or config.api_host,
        port=port or config.api_port,
        reload=debug,
        log_level=config.log_level.lower()
    )
