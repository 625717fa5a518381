"""
Tests for the balance and arrears calculator
"""

import pytest
from decimal import Decimal
from datetime import date

from core_billing.balances import (
    DueClassification, DashboardMetrics, classify, compute_dashboard_metrics,
    installment_owed_amount, is_due_soon, remaining, reported_remaining,
    resolve_base_amount, transaction_outstanding_balance, transaction_summary,
)
from core_billing.installments import InstallmentStatus


class TestOwedAmount:
    """Test how much an installment owes"""

    def test_base_amount_from_generator(self, make_installment):
        installment = make_installment(amount=Decimal('100.00'))
        assert resolve_base_amount(installment) == Decimal('100.00')
        assert installment_owed_amount(installment) == Decimal('100.00')

    def test_falls_back_to_transaction_installment_amount(self, make_installment, make_transaction):
        transaction = make_transaction(principal='240.00', installment_count=3)
        installment = make_installment(amount=Decimal('0'))

        assert resolve_base_amount(installment, transaction) == Decimal('80.00')

    def test_arrears_interest_added_without_override(self, make_installment):
        installment = make_installment(amount=Decimal('100.00'), arrears_interest=Decimal('15.00'))
        assert installment_owed_amount(installment) == Decimal('115.00')

    def test_override_already_carries_interest(self, make_installment):
        installment = make_installment(
            amount=Decimal('100.00'),
            override_amount=Decimal('115.00'),
            arrears_interest=Decimal('15.00')
        )
        assert resolve_base_amount(installment) == Decimal('115.00')
        assert installment_owed_amount(installment) == Decimal('115.00')

    def test_zero_override_is_ignored(self, make_installment):
        installment = make_installment(amount=Decimal('100.00'), override_amount=Decimal('0'))
        assert installment_owed_amount(installment) == Decimal('100.00')


class TestClassification:
    """Test due-date classification"""

    def test_overdue_due_today_upcoming(self, make_installment):
        today = date(2024, 3, 10)
        assert classify(make_installment(due_date=date(2024, 3, 9)), today) == DueClassification.OVERDUE
        assert classify(make_installment(due_date=date(2024, 3, 10)), today) == DueClassification.DUE_TODAY
        assert classify(make_installment(due_date=date(2024, 3, 11)), today) == DueClassification.UPCOMING

    def test_paid_installment_cannot_be_classified(self, make_installment):
        with pytest.raises(ValueError):
            classify(make_installment(status=InstallmentStatus.PAID), date(2024, 3, 10))

    def test_due_soon_window(self, make_installment):
        today = date(2024, 3, 10)
        assert is_due_soon(make_installment(due_date=date(2024, 3, 17)), today)
        assert not is_due_soon(make_installment(due_date=date(2024, 3, 18)), today)
        assert not is_due_soon(make_installment(due_date=date(2024, 3, 9)), today)
        assert is_due_soon(make_installment(due_date=date(2024, 3, 25)), today, window=15)
        assert not is_due_soon(
            make_installment(due_date=date(2024, 3, 12), status=InstallmentStatus.PAID), today
        )


class TestRemaining:
    """Test remaining and outstanding balances"""

    def test_remaining_after_partial(self, make_installment):
        installment = make_installment(amount_paid=Decimal('30.00'), status=InstallmentStatus.PARTIAL)
        assert remaining(installment) == Decimal('70.00')

    def test_reported_remaining_floors_at_zero(self, make_installment):
        installment = make_installment(amount=Decimal('100.00'), amount_paid=Decimal('120.00'))
        assert remaining(installment) == Decimal('-20.00')
        assert reported_remaining(installment) == Decimal('0.00')

    def test_outstanding_balance_is_exact(self, make_installment, make_transaction):
        """[paid 50, partial 30 of 50, pending 50] leaves 70"""
        transaction = make_transaction(principal='150.00', installment_count=3)
        installments = [
            make_installment(number=1, amount=Decimal('50.00'), amount_paid=Decimal('50.00'),
                             status=InstallmentStatus.PAID),
            make_installment(number=2, amount=Decimal('50.00'), amount_paid=Decimal('30.00'),
                             status=InstallmentStatus.PARTIAL),
            make_installment(number=3, amount=Decimal('50.00')),
        ]

        assert transaction_outstanding_balance(transaction, installments) == Decimal('70.00')

    def test_outstanding_balance_includes_rescheduled_interest(self, make_installment, make_transaction):
        transaction = make_transaction(principal='200.00', installment_count=2)
        installments = [
            make_installment(number=1, amount=Decimal('100.00'), override_amount=Decimal('110.00'),
                             arrears_interest=Decimal('10.00'), status=InstallmentStatus.RESCHEDULED),
            make_installment(number=2, amount=Decimal('100.00')),
        ]

        assert transaction_outstanding_balance(transaction, installments) == Decimal('210.00')

    def test_no_installments(self, make_transaction):
        assert transaction_outstanding_balance(make_transaction(), []) == Decimal('0.00')


class TestTransactionSummary:
    """Test per-transaction payment progress"""

    def test_summary(self, make_installment, make_transaction):
        transaction = make_transaction(principal='300.00', installment_count=3)
        installments = [
            make_installment(number=1, due_date=date(2024, 2, 1), amount_paid=Decimal('100.00'),
                             status=InstallmentStatus.PAID, paid_date=date(2024, 2, 1)),
            make_installment(number=2, due_date=date(2024, 3, 1), amount_paid=Decimal('50.00'),
                             status=InstallmentStatus.PARTIAL),
            make_installment(number=3, due_date=date(2024, 4, 1)),
        ]

        summary = transaction_summary(transaction, installments, today=date(2024, 3, 15))

        assert summary.total_paid == Decimal('150.00')
        assert summary.total_pending == Decimal('150.00')
        assert summary.paid_count == 1
        assert summary.percent_paid == Decimal('50.0')
        assert summary.next_due.number == 2
        assert [item.number for item in summary.overdue] == [2]


class TestDashboardMetrics:
    """Test the dashboard reduction"""

    def test_metrics(self, make_installment, make_transaction):
        today = date(2024, 3, 15)
        late = make_transaction(customer_id="c1", principal='200.00', installment_count=2,
                                start_date=date(2024, 1, 10))
        fresh = make_transaction(customer_id="c2", principal='300.00', installment_count=3,
                                 start_date=date(2024, 3, 1))
        installments = {
            late.id: [
                make_installment(transaction_id=late.id, number=1, due_date=date(2024, 2, 10),
                                 amount_paid=Decimal('100.00'), status=InstallmentStatus.PAID,
                                 paid_date=date(2024, 3, 2)),
                make_installment(transaction_id=late.id, number=2, due_date=date(2024, 3, 10)),
            ],
            fresh.id: [
                make_installment(transaction_id=fresh.id, number=1, due_date=date(2024, 3, 15)),
                make_installment(transaction_id=fresh.id, number=2, due_date=date(2024, 3, 20)),
                make_installment(transaction_id=fresh.id, number=3, due_date=date(2024, 5, 1)),
            ],
        }

        metrics = compute_dashboard_metrics(3, [late, fresh], installments, today=today)

        assert metrics.total_customers == 3
        assert metrics.sales_this_month == Decimal('300.00')
        assert metrics.collections_this_month == Decimal('100.00')
        assert metrics.overdue_installments == 1
        assert metrics.due_today_installments == 1
        assert metrics.upcoming_installments == 1
        assert metrics.delinquent_customers == 1
        assert metrics.total_outstanding == Decimal('400.00')
        assert metrics.urgent_outstanding == Decimal('400.00')
        assert metrics.delinquency_rate == Decimal('33.3')
        assert metrics.collection_effectiveness == Decimal('33.3')

    def test_empty_metrics(self):
        metrics = DashboardMetrics()
        assert metrics.delinquency_rate == Decimal('0.00')
        assert metrics.average_outstanding_per_customer == Decimal('0.00')
