"""
Tests for customer management
"""

import pytest

from core_billing.audit import AuditEventType
from core_billing.errors import ValidationError, NotFoundError, ConstraintError


class TestCustomerCreation:
    """Test creating customers"""

    def test_create_customer(self, system):
        customer = system.customer_manager.create_customer(
            first_name="  Juan ", last_name="Gómez", document=" 28999000 ",
            phone="11-4444-5555", email="juan@example.com", address="Av. Siempre Viva 742"
        )

        assert customer.first_name == "Juan"
        assert customer.document == "28999000"
        assert customer.full_name == "Juan Gómez"
        assert customer.phone_digits == "1144445555"

        loaded = system.customer_manager.get_customer(customer.id)
        assert loaded.address == "Av. Siempre Viva 742"
        assert loaded.email == "juan@example.com"

    def test_name_without_surname(self, system):
        customer = system.customer_manager.create_customer("Cher", "", "111")
        assert customer.full_name == "Cher"

    @pytest.mark.parametrize("first_name,document,email", [
        ("", "123", None),
        ("Ana", "  ", None),
        ("Ana", "123", "not-an-email"),
    ])
    def test_invalid_customer(self, system, first_name, document, email):
        with pytest.raises(ValidationError):
            system.customer_manager.create_customer(first_name, "X", document, email=email)

        assert system.customer_manager.list_customers() == []

    def test_document_is_unique(self, system, customer):
        with pytest.raises(ConstraintError):
            system.customer_manager.create_customer("Otra", "Persona", customer.document)

    def test_creation_is_audited(self, system, customer):
        events = system.audit_trail.get_events_for_entity("customer", customer.id)

        assert [event.event_type for event in events] == [AuditEventType.CUSTOMER_CREATED]
        assert events[0].metadata["document"] == "30111222"


class TestCustomerQueries:
    """Test lookups, listing and search"""

    def setup_customers(self, system):
        manager = system.customer_manager
        manager.create_customer("Lucía", "Zapata", "40000001")
        manager.create_customer("Bruno", "Acosta", "40000002")
        manager.create_customer("Carla", "Méndez", "50000003")

    def test_list_ordered_by_last_name(self, system):
        self.setup_customers(system)

        names = [customer.last_name for customer in system.customer_manager.list_customers()]

        assert names == ["Acosta", "Méndez", "Zapata"]

    def test_search_by_name_and_document(self, system):
        self.setup_customers(system)
        manager = system.customer_manager

        assert [c.first_name for c in manager.search_customers("carla")] == ["Carla"]
        assert [c.first_name for c in manager.search_customers("ZAP")] == ["Lucía"]
        assert [c.first_name for c in manager.search_customers("4000000")] == ["Bruno", "Lucía"]
        assert len(manager.search_customers("  ")) == 3

    def test_get_by_document(self, system, customer):
        assert system.customer_manager.get_customer_by_document("30111222").id == customer.id
        assert system.customer_manager.get_customer_by_document("nope") is None

    def test_require_unknown(self, system):
        with pytest.raises(NotFoundError):
            system.customer_manager.require_customer("missing")


class TestCustomerUpdate:
    """Test editing customer profiles"""

    def test_update_contact_details(self, system, customer):
        updated = system.customer_manager.update_customer(
            customer.id, phone="+54 11 1234-5678", address="Calle 1", user_id="op-2"
        )

        assert updated.phone == "+54 11 1234-5678"
        loaded = system.customer_manager.get_customer(customer.id)
        assert loaded.address == "Calle 1"

        events = system.audit_trail.get_events_for_entity("customer", customer.id)
        assert events[-1].event_type == AuditEventType.CUSTOMER_UPDATED
        assert events[-1].metadata["changed_fields"] == ["address", "phone"]

    def test_document_is_immutable(self, system, customer):
        with pytest.raises(ValidationError):
            system.customer_manager.update_customer(customer.id, document="99999999")

    def test_same_document_is_allowed(self, system, customer):
        updated = system.customer_manager.update_customer(customer.id, document="30111222", notes="VIP")
        assert updated.notes == "VIP"

    def test_invalid_email_rejected(self, system, customer):
        with pytest.raises(ValidationError):
            system.customer_manager.update_customer(customer.id, email="broken@")

        assert system.customer_manager.get_customer(customer.id).email == "ana@example.com"

    def test_no_changes_no_audit(self, system, customer):
        system.customer_manager.update_customer(customer.id, first_name="Ana")
        events = system.audit_trail.get_events_for_entity("customer", customer.id)
        assert len(events) == 1


class TestCustomerDeletion:
    """Test the deletion guard"""

    def test_delete_customer_without_transactions(self, system, customer):
        system.customer_manager.delete_customer(customer.id)

        assert system.customer_manager.get_customer(customer.id) is None
        events = system.audit_trail.get_events_by_type(AuditEventType.CUSTOMER_DELETED)
        assert [event.entity_id for event in events] == [customer.id]

    def test_delete_customer_with_transactions_fails(self, system, customer, sale):
        with pytest.raises(ConstraintError):
            system.customer_manager.delete_customer(customer.id)

        assert system.customer_manager.get_customer(customer.id) is not None

    def test_delete_after_sale_removed(self, system, customer, sale):
        system.transaction_manager.delete_transaction(sale.id)
        system.customer_manager.delete_customer(customer.id)

        assert system.customer_manager.get_customer(customer.id) is None

    def test_delete_unknown(self, system):
        with pytest.raises(NotFoundError):
            system.customer_manager.delete_customer("missing")
