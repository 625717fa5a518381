"""
Customer Management Module

Manages customer profiles: identity document (unique per tenant and immutable
once created), contact details, and the deletion guard that keeps customers
with transactions on file.
"""

from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Dict, List, Optional
import logging
import re
import uuid

from .storage import StorageInterface, StorageRecord
from .audit import AuditTrail, AuditEventType
from .errors import ValidationError, NotFoundError, ConstraintError


logger = logging.getLogger(__name__)

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


@dataclass
class Customer(StorageRecord):
    """
    Customer profile
    """
    first_name: str
    last_name: str
    document: str                 # National ID / tax ID, unique per tenant
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self):
        if not self.first_name or not self.first_name.strip():
            raise ValidationError("Customer first name is required")
        if not self.document or not self.document.strip():
            raise ValidationError("Customer document is required")
        if self.email and not re.match(EMAIL_PATTERN, self.email):
            raise ValidationError("Invalid email format")

    @property
    def full_name(self) -> str:
        """Get customer's full name"""
        return f"{self.first_name} {self.last_name or ''}".strip()

    @property
    def phone_digits(self) -> str:
        """Phone number with everything but digits stripped, for messaging links"""
        return re.sub(r'[^\d]', '', self.phone or '')


class CustomerManager:
    """
    Manages customer lifecycle
    """

    def __init__(self, storage: StorageInterface, audit_trail: AuditTrail):
        self.storage = storage
        self.audit_trail = audit_trail
        self.table_name = "customers"
        self.transactions_table = "transactions"

    def create_customer(
        self,
        first_name: str,
        last_name: str,
        document: str,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        address: Optional[str] = None,
        notes: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> Customer:
        """
        Create a new customer

        Raises:
            ValidationError: missing name/document or malformed email
            ConstraintError: another customer already has this document
        """
        now = datetime.now(timezone.utc)
        customer = Customer(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            first_name=(first_name or "").strip(),
            last_name=(last_name or "").strip(),
            document=(document or "").strip(),
            phone=phone,
            email=email,
            address=address,
            notes=notes
        )

        if self.get_customer_by_document(customer.document):
            raise ConstraintError(f"A customer with document {customer.document} already exists")

        self._save_customer(customer)

        self.audit_trail.log_event(
            event_type=AuditEventType.CUSTOMER_CREATED,
            entity_type="customer",
            entity_id=customer.id,
            metadata={"document": customer.document, "name": customer.full_name},
            user_id=user_id
        )
        logger.info("Customer %s created", customer.id)

        return customer

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        """Get customer by ID"""
        data = self.storage.load(self.table_name, customer_id)
        if data:
            return self._customer_from_dict(data)
        return None

    def require_customer(self, customer_id: str) -> Customer:
        """Get customer by ID or raise NotFoundError"""
        customer = self.get_customer(customer_id)
        if not customer:
            raise NotFoundError(f"Customer {customer_id} not found")
        return customer

    def get_customer_by_document(self, document: str) -> Optional[Customer]:
        """Get customer by identity document"""
        matches = self.storage.find(self.table_name, {"document": document})
        if matches:
            return self._customer_from_dict(matches[0])
        return None

    def list_customers(self) -> List[Customer]:
        """All customers ordered by last name"""
        customers_data = self.storage.find(self.table_name, {}, order_by="last_name")
        return [self._customer_from_dict(data) for data in customers_data]

    def search_customers(self, query: str) -> List[Customer]:
        """Case-insensitive search over name, surname and document"""
        needle = (query or "").strip().lower()
        if not needle:
            return self.list_customers()
        return [
            customer for customer in self.list_customers()
            if needle in customer.first_name.lower()
            or needle in (customer.last_name or "").lower()
            or needle in customer.document.lower()
        ]

    def update_customer(
        self,
        customer_id: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        document: Optional[str] = None,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        address: Optional[str] = None,
        notes: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> Customer:
        """
        Update customer contact information. The document cannot change.
        """
        customer = self.require_customer(customer_id)

        if document is not None and document.strip() != customer.document:
            raise ValidationError("Customer document cannot be changed once created")

        changes: Dict[str, str] = {}
        for field_name, value in (
            ("first_name", first_name), ("last_name", last_name), ("phone", phone),
            ("email", email), ("address", address), ("notes", notes)
        ):
            if value is not None and value != getattr(customer, field_name):
                changes[field_name] = value
                setattr(customer, field_name, value)

        # Re-run validation on the edited profile
        customer.__post_init__()

        if changes:
            customer.updated_at = datetime.now(timezone.utc)
            self._save_customer(customer)
            self.audit_trail.log_event(
                event_type=AuditEventType.CUSTOMER_UPDATED,
                entity_type="customer",
                entity_id=customer.id,
                metadata={"changed_fields": sorted(changes)},
                user_id=user_id
            )

        return customer

    def has_transactions(self, customer_id: str) -> bool:
        return bool(self.storage.find(self.transactions_table, {"customer_id": customer_id}))

    def delete_customer(self, customer_id: str, user_id: Optional[str] = None) -> None:
        """
        Delete a customer that has no transactions

        Raises:
            NotFoundError: unknown customer
            ConstraintError: the customer still has transactions
        """
        customer = self.require_customer(customer_id)

        if self.has_transactions(customer_id):
            raise ConstraintError(
                "Cannot delete customer because it has associated transactions"
            )

        self.storage.delete(self.table_name, customer_id)

        self.audit_trail.log_event(
            event_type=AuditEventType.CUSTOMER_DELETED,
            entity_type="customer",
            entity_id=customer_id,
            metadata={"document": customer.document},
            user_id=user_id
        )
        logger.info("Customer %s deleted", customer_id)

    def _save_customer(self, customer: Customer) -> None:
        self.storage.save(self.table_name, customer.id, self._customer_to_dict(customer))

    def _customer_to_dict(self, customer: Customer) -> Dict:
        return customer.to_dict()

    def _customer_from_dict(self, data: Dict) -> Customer:
        return Customer(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            first_name=data['first_name'],
            last_name=data.get('last_name') or "",
            document=data['document'],
            phone=data.get('phone'),
            email=data.get('email'),
            address=data.get('address'),
            notes=data.get('notes')
        )
