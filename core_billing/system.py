"""
Billing System Module

Wires every component over one record store for one session context.
"""

import threading
from typing import Optional

from .audit import AuditTrail
from .config import BillingConfig, get_config
from .customers import CustomerManager
from .installments import InstallmentRepository
from .notifications import CollectionNotices
from .payments import PaymentReconciler
from .products import ProductCatalog
from .reporting import ReportingService
from .rescheduling import RescheduleEngine
from .statements import StatementService
from .storage import StorageInterface
from .tenancy import SessionContext, scoped_storage
from .transactions import TransactionManager


class BillingSystem:
    """Billing core with all components initialized"""

    def __init__(
        self,
        storage: StorageInterface,
        context: Optional[SessionContext] = None,
        config: Optional[BillingConfig] = None,
        lock: Optional[threading.RLock] = None
    ):
        self.context = context or SessionContext()
        self.config = config or get_config()
        self.root_storage = storage
        self.storage = scoped_storage(storage, self.context)
        lock = lock or threading.RLock()

        self.audit_trail = AuditTrail(
            self.storage, enabled=self.config.enable_audit_logging, tenant_id=self.context.tenant_id
        )
        self.customer_manager = CustomerManager(self.storage, self.audit_trail)
        self.product_catalog = ProductCatalog(self.storage, self.audit_trail)
        self.installments = InstallmentRepository(self.storage)
        self.transaction_manager = TransactionManager(
            self.storage, self.audit_trail, self.customer_manager,
            self.product_catalog, self.installments
        )
        self.payment_reconciler = PaymentReconciler(
            self.storage, self.audit_trail, self.installments,
            self.transaction_manager, self.customer_manager,
            receipt_prefix=self.config.receipt_prefix,
            lock=lock
        )
        self.reschedule_engine = RescheduleEngine(
            self.storage, self.audit_trail, self.installments, self.transaction_manager,
            monthly_rate=self.config.arrears_monthly_rate,
            block_days=self.config.arrears_block_days,
            lock=lock
        )
        self.statement_service = StatementService(
            self.storage, self.audit_trail, self.customer_manager,
            self.transaction_manager, self.installments,
            lock=lock
        )
        self.collection_notices = CollectionNotices(
            self.customer_manager, self.transaction_manager, self.installments,
            window_days=self.config.notification_window_days
        )
        self.reporting_service = ReportingService(
            self.customer_manager, self.transaction_manager, self.installments,
            due_soon_days=self.config.due_soon_days,
            delinquency_min_days=self.config.delinquency_min_days
        )

    @property
    def user_id(self) -> Optional[str]:
        return self.context.user_id
