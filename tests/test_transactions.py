"""
Tests for transaction creation and lifecycle
"""

import pytest
from decimal import Decimal
from datetime import date

from core_billing.audit import AuditEventType
from core_billing.dates import PaymentPlan
from core_billing.errors import ValidationError, NotFoundError
from core_billing.installments import InstallmentStatus
from core_billing.transactions import (
    TransactionKind, TransactionStatus, calculate_installment_amount, calculate_total,
)


class TestCalculations:
    """Test total and installment amount arithmetic"""

    def test_total_without_interest(self):
        assert calculate_total(Decimal('300'), Decimal('0')) == Decimal('300.00')

    def test_total_with_flat_interest(self):
        assert calculate_total(Decimal('1000'), Decimal('35')) == Decimal('1350.00')
        assert calculate_total(Decimal('99.99'), Decimal('12.5')) == Decimal('112.49')

    def test_installment_amount(self):
        assert calculate_installment_amount(Decimal('100'), 3) == Decimal('33.33')


class TestCreateTransaction:
    """Test creating sales and loans"""

    def test_sale_uses_product_price(self, system, sale, product):
        assert sale.kind == TransactionKind.SALE
        assert sale.principal == Decimal('300.00')
        assert sale.total == Decimal('300.00')
        assert sale.installment_amount == Decimal('100.00')
        assert sale.status == TransactionStatus.ACTIVE
        assert sale.product_id == product.id

    def test_sale_creates_schedule(self, system, sale, sale_installments):
        assert [item.number for item in sale_installments] == [1, 2, 3]
        assert [item.due_date for item in sale_installments] == [
            date(2024, 2, 1), date(2024, 3, 1), date(2024, 4, 1)
        ]
        assert all(item.status == InstallmentStatus.PENDING for item in sale_installments)

    def test_sale_takes_one_unit_from_stock(self, system, sale, product):
        assert system.product_catalog.get_product(product.id).stock == 1

    def test_loan_with_interest(self, system, customer):
        loan = system.transaction_manager.create_transaction(
            customer_id=customer.id,
            kind="loan",
            installment_count=4,
            payment_plan="weekly",
            start_date="2024-05-06",
            principal="1000",
            interest_rate="20",
            description="Cash loan"
        )
        installments = system.installments.list_for_transaction(loan.id)

        assert loan.total == Decimal('1200.00')
        assert loan.payment_plan == PaymentPlan.WEEKLY
        assert [item.amount for item in installments] == [Decimal('300.00')] * 4
        assert installments[0].due_date == date(2024, 5, 13)

    def test_price_override(self, system, customer, product):
        sale = system.transaction_manager.create_transaction(
            customer_id=customer.id, kind=TransactionKind.SALE, installment_count=2,
            payment_plan=PaymentPlan.BIWEEKLY, start_date="2024-01-01",
            product_id=product.id, principal="280"
        )
        assert sale.total == Decimal('280.00')

    def test_creation_is_audited(self, system, sale):
        events = system.audit_trail.get_events_for_entity("transaction", sale.id)

        assert [event.event_type for event in events] == [AuditEventType.TRANSACTION_CREATED]
        assert events[0].metadata["total"] == "300.00"
        assert events[0].metadata["payment_plan"] == "monthly"

    def test_sale_requires_product(self, system, customer):
        with pytest.raises(ValidationError):
            system.transaction_manager.create_transaction(
                customer_id=customer.id, kind="sale", installment_count=3,
                payment_plan="monthly", start_date="2024-01-01", principal="100"
            )

    @pytest.mark.parametrize("overrides", [
        {"installment_count": 0},
        {"principal": "0"},
        {"principal": "-5"},
        {"interest_rate": "-1"},
        {"interest_rate": "abc"},
        {"start_date": "2024-13-01"},
    ])
    def test_invalid_loans_write_nothing(self, system, customer, overrides):
        values = dict(
            customer_id=customer.id, kind="loan", installment_count=3,
            payment_plan="monthly", start_date="2024-01-01", principal="300"
        )
        values.update(overrides)

        with pytest.raises(ValidationError):
            system.transaction_manager.create_transaction(**values)

        assert system.transaction_manager.list_transactions() == []
        assert system.installments.list_all() == []

    def test_unknown_plan(self, system, customer):
        with pytest.raises(ValueError):
            system.transaction_manager.create_transaction(
                customer_id=customer.id, kind="loan", installment_count=3,
                payment_plan="daily", start_date="2024-01-01", principal="300"
            )

    def test_unknown_customer(self, system):
        with pytest.raises(NotFoundError):
            system.transaction_manager.create_transaction(
                customer_id="missing", kind="loan", installment_count=3,
                payment_plan="monthly", start_date="2024-01-01", principal="300"
            )

    def test_unknown_product(self, system, customer):
        with pytest.raises(NotFoundError):
            system.transaction_manager.create_transaction(
                customer_id=customer.id, kind="sale", installment_count=3,
                payment_plan="monthly", start_date="2024-01-01", product_id="missing"
            )


class TestTransactionQueries:
    """Test listing and lookups"""

    def test_list_for_customer(self, system, customer, sale):
        loan = system.transaction_manager.create_transaction(
            customer_id=customer.id, kind="loan", installment_count=2,
            payment_plan="monthly", start_date="2023-12-01", principal="50"
        )

        listed = system.transaction_manager.list_for_customer(customer.id)

        assert [item.id for item in listed] == [loan.id, sale.id]

    def test_list_by_status(self, system, sale):
        assert [item.id for item in system.transaction_manager.list_transactions("active")] == [sale.id]
        assert system.transaction_manager.list_transactions(TransactionStatus.COMPLETED) == []

    def test_require_unknown(self, system):
        with pytest.raises(NotFoundError):
            system.transaction_manager.require_transaction("missing")


class TestTransactionLifecycle:
    """Test deletion and delinquency marking"""

    def test_delete_cascades_to_installments(self, system, sale):
        removed = system.transaction_manager.delete_transaction(sale.id, user_id="op-1")

        assert removed == 3
        assert system.transaction_manager.get_transaction(sale.id) is None
        assert system.installments.list_for_transaction(sale.id) == []
        events = system.audit_trail.get_events_by_type(AuditEventType.TRANSACTION_DELETED)
        assert events[0].metadata["installments_removed"] == 3

    def test_mark_delinquent_after_grace_period(self, system, sale):
        manager = system.transaction_manager

        within_grace = manager.mark_delinquent_transactions(grace_days=30, today=date(2024, 3, 2))
        assert within_grace["marked_delinquent"] == 0

        results = manager.mark_delinquent_transactions(grace_days=30, today=date(2024, 3, 3))
        assert results == {"transactions_processed": 1, "marked_delinquent": 1, "restored_active": 0}
        assert manager.get_transaction(sale.id).status == TransactionStatus.DELINQUENT

    def test_delinquent_restored_once_caught_up(self, system, sale, sale_installments):
        manager = system.transaction_manager
        manager.mark_delinquent_transactions(grace_days=30, today=date(2024, 3, 10))

        system.payment_reconciler.apply_payment(sale_installments[0].id, "100", payment_date="2024-03-10")
        results = manager.mark_delinquent_transactions(grace_days=30, today=date(2024, 3, 10))

        assert results["restored_active"] == 1
        assert manager.get_transaction(sale.id).status == TransactionStatus.ACTIVE

    def test_completed_transactions_are_skipped(self, system, sale, sale_installments):
        for installment in sale_installments:
            system.payment_reconciler.apply_payment(installment.id, "100")

        results = system.transaction_manager.mark_delinquent_transactions(today=date(2025, 1, 1))

        assert results["transactions_processed"] == 0
