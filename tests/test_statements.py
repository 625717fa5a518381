"""
Tests for account statements and entry reversal
"""

import pytest
from decimal import Decimal
from datetime import date

from core_billing.audit import AuditEventType
from core_billing.errors import NotFoundError
from core_billing.installments import InstallmentStatus
from core_billing.statements import EntryKind, build_ledger
from core_billing.transactions import TransactionKind, TransactionStatus


class TestBuildLedger:
    """Test the pure ledger builder"""

    def test_running_balance(self, make_transaction, make_installment):
        """Sale 300, then two payments of 100: 300, 200, 100"""
        transaction = make_transaction(principal='300.00', start_date=date(2024, 1, 1))
        installments = [
            make_installment(transaction_id=transaction.id, number=1, amount_paid=Decimal('100.00'),
                             status=InstallmentStatus.PAID, paid_date=date(2024, 2, 1)),
            make_installment(transaction_id=transaction.id, number=2, amount_paid=Decimal('100.00'),
                             status=InstallmentStatus.PAID, paid_date=date(2024, 3, 1)),
            make_installment(transaction_id=transaction.id, number=3),
        ]

        statement = build_ledger([transaction], {transaction.id: installments})

        assert [entry.balance for entry in statement.entries] == [
            Decimal('300.00'), Decimal('200.00'), Decimal('100.00')
        ]
        assert statement.total_debits == Decimal('300.00')
        assert statement.total_credits == Decimal('200.00')
        assert statement.current_balance == Decimal('100.00')

    def test_partial_payments_are_not_credited(self, make_transaction, make_installment):
        transaction = make_transaction()
        installments = [
            make_installment(transaction_id=transaction.id, amount_paid=Decimal('40.00'),
                             status=InstallmentStatus.PARTIAL, paid_date=date(2024, 2, 1)),
        ]

        statement = build_ledger([transaction], {transaction.id: installments})

        assert [entry.kind for entry in statement.entries] == [EntryKind.SALE]

    def test_same_day_debit_before_credit(self, make_transaction, make_installment):
        first = make_transaction(principal='100.00', installment_count=1, start_date=date(2024, 1, 1))
        second = make_transaction(principal='200.00', installment_count=1, start_date=date(2024, 2, 1))
        paid = make_installment(transaction_id=first.id, amount_paid=Decimal('100.00'),
                                status=InstallmentStatus.PAID, paid_date=date(2024, 2, 1))

        statement = build_ledger([first, second], {first.id: [paid]})

        assert [entry.entry_id for entry in statement.entries] == [
            f"sale-{first.id}", f"sale-{second.id}", f"payment-{paid.id}"
        ]
        assert statement.entries[-1].balance == Decimal('200.00')

    def test_descriptions_and_references(self, make_transaction, make_installment):
        sale = make_transaction(product_id="prod-1", invoice_number="A-0009")
        loan = make_transaction(kind=TransactionKind.LOAN, start_date=date(2024, 1, 2))
        paid = make_installment(transaction_id=sale.id, number=2, amount_paid=Decimal('100.00'),
                                status=InstallmentStatus.PAID, paid_date=date(2024, 2, 1),
                                receipt_number="REC-1-ABCDEF")

        statement = build_ledger([sale, loan], {sale.id: [paid]}, {"prod-1": "Washer"})
        sale_entry, loan_entry, payment_entry = statement.entries

        assert sale_entry.description == "Sale - Washer"
        assert sale_entry.reference == "Invoice A-0009"
        assert loan_entry.description == "Cash loan"
        assert payment_entry.description == "Installment 2 payment - Washer"
        assert payment_entry.reference == "Receipt REC-1-ABCDEF"

    def test_filter_keeps_full_statement_balances(self, make_transaction, make_installment):
        transaction = make_transaction(start_date=date(2024, 1, 1))
        installments = [
            make_installment(transaction_id=transaction.id, number=number, amount_paid=Decimal('100.00'),
                             status=InstallmentStatus.PAID, paid_date=date(2024, number + 1, 1))
            for number in (1, 2)
        ]
        statement = build_ledger([transaction], {transaction.id: installments})

        payments = statement.filter(kind=EntryKind.PAYMENT)
        march = statement.filter(start=date(2024, 3, 1), end=date(2024, 3, 31))

        assert len(payments) == 2
        assert [entry.balance for entry in march] == [Decimal('100.00')]

    def test_empty(self):
        statement = build_ledger([], {})
        assert statement.entries == []
        assert statement.current_balance == Decimal('0.00')


class TestStatementService:
    """Test statements built from storage and reversals"""

    def test_customer_statement(self, system, customer, sale, sale_installments):
        system.payment_reconciler.apply_payment(sale_installments[0].id, "100", payment_date="2024-02-01")

        statement = system.statement_service.customer_statement(customer.id)

        assert [entry.kind for entry in statement.entries] == [EntryKind.SALE, EntryKind.PAYMENT]
        assert statement.entries[0].description == "Sale - Refrigerator"
        assert statement.entries[0].reference == "Invoice A-0001"
        assert statement.current_balance == Decimal('200.00')

    def test_unknown_customer(self, system):
        with pytest.raises(NotFoundError):
            system.statement_service.customer_statement("missing")

    def test_revert_payment(self, system, customer, sale, sale_installments):
        for installment in sale_installments:
            system.payment_reconciler.apply_payment(installment.id, "100", payment_date="2024-04-01")
        statement = system.statement_service.customer_statement(customer.id)
        payment_entry = statement.filter(kind=EntryKind.PAYMENT)[-1]

        system.statement_service.revert_entry(payment_entry, user_id="op-1")

        installment = system.installments.get(payment_entry.installment_id)
        assert installment.status == InstallmentStatus.PENDING
        assert installment.amount_paid == Decimal('0.00')
        assert installment.paid_date is None
        assert installment.receipt_number is None

        transaction = system.transaction_manager.get_transaction(sale.id)
        assert transaction.status == TransactionStatus.ACTIVE
        assert transaction.completed_date is None

        events = system.audit_trail.get_events_by_type(AuditEventType.PAYMENT_REVERTED)
        assert [event.entity_id for event in events] == [payment_entry.installment_id]
        assert system.statement_service.customer_statement(customer.id).current_balance == Decimal('100.00')

    def test_revert_sale(self, system, customer, sale, sale_installments):
        system.payment_reconciler.apply_payment(sale_installments[0].id, "100", payment_date="2024-02-01")
        statement = system.statement_service.customer_statement(customer.id)
        sale_entry = statement.filter(kind=EntryKind.SALE)[0]

        system.statement_service.revert_entry(sale_entry)

        assert system.transaction_manager.get_transaction(sale.id) is None
        assert system.installments.list_for_transaction(sale.id) == []
        assert system.statement_service.customer_statement(customer.id).entries == []
        assert not system.customer_manager.has_transactions(customer.id)

    def test_revert_unknown_sale(self, system, customer, sale):
        statement = system.statement_service.customer_statement(customer.id)
        sale_entry = statement.entries[0]
        system.transaction_manager.delete_transaction(sale.id)

        with pytest.raises(NotFoundError):
            system.statement_service.revert_entry(sale_entry)
