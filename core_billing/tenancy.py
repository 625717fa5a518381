"""
Multi-Tenancy Support Module

Every business (tenant) sees only its own customers, transactions and
installments. The tenant and operator travel in an explicit SessionContext
handed to the storage wrapper; nothing is read from ambient global state.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Any

from .storage import StorageInterface


TENANT_FIELD = "_tenant_id"


@dataclass(frozen=True)
class SessionContext:
    """Who is acting, and for which tenant"""
    tenant_id: Optional[str] = None  # None = super-admin, sees every tenant
    user_id: Optional[str] = None

    @property
    def is_super_admin(self) -> bool:
        return self.tenant_id is None


class TenantAwareStorage(StorageInterface):
    """Storage wrapper that scopes any StorageInterface to one tenant"""

    def __init__(self, inner_storage: StorageInterface, context: SessionContext):
        self.inner = inner_storage
        self.context = context

    def _add_tenant_filter(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Stamp the tenant ID onto a record or filter"""
        if self.context.tenant_id:
            data = data.copy()
            data[TENANT_FIELD] = self.context.tenant_id
        return data

    def _check_tenant_access(self, data: Dict[str, Any]) -> bool:
        """Check if the current tenant can access this data"""
        if self.context.is_super_admin:
            return True
        return data.get(TENANT_FIELD) == self.context.tenant_id

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record, refusing to overwrite another tenant's record"""
        existing = self.inner.load(table, record_id)
        if existing is not None and not self._check_tenant_access(existing):
            raise PermissionError(f"Record {record_id} in {table} belongs to another tenant")
        self.inner.save(table, record_id, self._add_tenant_filter(data))

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record with tenant isolation"""
        result = self.inner.load(table, record_id)
        if result and not self._check_tenant_access(result):
            return None
        return result

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records visible to the tenant"""
        return [record for record in self.inner.load_all(table) if self._check_tenant_access(record)]

    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record with tenant verification"""
        record = self.inner.load(table, record_id)
        if not record or not self._check_tenant_access(record):
            return False  # Can't delete what we can't see
        return self.inner.delete(table, record_id)

    def exists(self, table: str, record_id: str) -> bool:
        """Check if record exists and is accessible by current tenant"""
        record = self.inner.load(table, record_id)
        return record is not None and self._check_tenant_access(record)

    def find(self, table: str, filters: Dict[str, Any],
             order_by: Optional[str] = None, descending: bool = False) -> List[Dict[str, Any]]:
        """Find records with tenant filtering"""
        return self.inner.find(table, self._add_tenant_filter(filters), order_by, descending)

    def count(self, table: str) -> int:
        """Count records accessible by current tenant"""
        return len(self.load_all(table))

    def clear_table(self, table: str) -> None:
        """Clear table - only for super-admin (no tenant set)"""
        if not self.context.is_super_admin:
            raise PermissionError("Cannot clear table with tenant context active")
        self.inner.clear_table(table)

    def close(self) -> None:
        """Close underlying storage"""
        self.inner.close()

    def begin_transaction(self) -> None:
        self.inner.begin_transaction()

    def commit(self) -> None:
        self.inner.commit()

    def rollback(self) -> None:
        self.inner.rollback()


def scoped_storage(storage: StorageInterface, context: Optional[SessionContext]) -> StorageInterface:
    """Wrap storage for a tenant; super-admin contexts get the raw storage"""
    if context is None or context.is_super_admin:
        return storage
    return TenantAwareStorage(storage, context)
