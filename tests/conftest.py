"""
Shared fixtures: an in-memory billing system with one customer and one product
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from core_billing.config import BillingConfig
from core_billing.dates import PaymentPlan
from core_billing.installments import Installment, InstallmentStatus
from core_billing.storage import InMemoryStorage
from core_billing.system import BillingSystem
from core_billing.transactions import (
    Transaction, TransactionKind, calculate_installment_amount, calculate_total,
)


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def config():
    return BillingConfig(database_url="memory://", enable_audit_logging=True)


@pytest.fixture
def system(storage, config):
    return BillingSystem(storage, config=config)


@pytest.fixture
def customer(system):
    return system.customer_manager.create_customer(
        first_name="Ana",
        last_name="Pérez",
        document="30111222",
        phone="+54 9 11 5555-1234",
        email="ana@example.com"
    )


@pytest.fixture
def product(system):
    return system.product_catalog.create_product(
        name="Refrigerator", unit_price="300.00", description="Two-door, 400 L", stock=2
    )


@pytest.fixture
def sale(system, customer, product):
    """300.00 sale in 3 monthly installments of 100.00 starting 2024-01-01"""
    return system.transaction_manager.create_transaction(
        customer_id=customer.id,
        kind=TransactionKind.SALE,
        installment_count=3,
        payment_plan=PaymentPlan.MONTHLY,
        start_date="2024-01-01",
        product_id=product.id,
        invoice_number="A-0001"
    )


@pytest.fixture
def sale_installments(system, sale):
    return system.installments.list_for_transaction(sale.id)


@pytest.fixture
def make_installment():
    """Build an unsaved Installment with sensible defaults"""
    def factory(**overrides):
        now = datetime.now(timezone.utc)
        values = dict(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            transaction_id="txn-1",
            number=1,
            amount=Decimal('100.00'),
            due_date=date(2024, 2, 1),
            status=InstallmentStatus.PENDING,
        )
        values.update(overrides)
        return Installment(**values)
    return factory


@pytest.fixture
def make_transaction():
    """Build an unsaved Transaction with sensible defaults"""
    def factory(**overrides):
        now = datetime.now(timezone.utc)
        principal = Decimal(str(overrides.pop('principal', '300.00')))
        count = overrides.pop('installment_count', 3)
        total = calculate_total(principal, Decimal('0'))
        values = dict(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            customer_id="cust-1",
            kind=TransactionKind.SALE,
            principal=principal,
            interest_rate=Decimal('0'),
            total=total,
            payment_plan=PaymentPlan.MONTHLY,
            installment_count=count,
            installment_amount=calculate_installment_amount(total, count),
            start_date=date(2024, 1, 1),
        )
        values.update(overrides)
        return Transaction(**values)
    return factory
