"""
Product Catalog Module

Catalog of appliances and loan products that transactions refer to.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Dict, List, Optional
from enum import Enum
import logging
import uuid

from .storage import StorageInterface, StorageRecord
from .audit import AuditTrail, AuditEventType
from .errors import ValidationError, NotFoundError
from .money import ZERO, to_amount


logger = logging.getLogger(__name__)


class ProductCategory(Enum):
    """What a product is"""
    APPLIANCE = "appliance"  # Goods sold on installments
    LOAN = "loan"            # Cash loan template


@dataclass
class Product(StorageRecord):
    """Catalog entry"""
    name: str
    unit_price: Decimal
    category: ProductCategory = ProductCategory.APPLIANCE
    description: Optional[str] = None
    stock: int = 0

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValidationError("Product name is required")
        if self.unit_price < 0:
            raise ValidationError("Unit price cannot be negative")
        if self.stock < 0:
            raise ValidationError("Stock cannot be negative")

    @property
    def in_stock(self) -> bool:
        return self.stock > 0


class ProductCatalog:
    """
    Manages catalog entries and stock
    """

    def __init__(self, storage: StorageInterface, audit_trail: AuditTrail):
        self.storage = storage
        self.audit_trail = audit_trail
        self.table_name = "products"

    def create_product(
        self,
        name: str,
        unit_price,
        category: ProductCategory = ProductCategory.APPLIANCE,
        description: Optional[str] = None,
        stock: int = 0,
        user_id: Optional[str] = None
    ) -> Product:
        """Create a catalog entry"""
        now = datetime.now(timezone.utc)
        product = Product(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            name=(name or "").strip(),
            unit_price=to_amount(unit_price),
            category=ProductCategory(category),
            description=description,
            stock=int(stock)
        )
        self._save_product(product)

        self.audit_trail.log_event(
            event_type=AuditEventType.PRODUCT_CREATED,
            entity_type="product",
            entity_id=product.id,
            metadata={"name": product.name, "unit_price": product.unit_price},
            user_id=user_id
        )
        return product

    def get_product(self, product_id: str) -> Optional[Product]:
        """Get product by ID"""
        data = self.storage.load(self.table_name, product_id)
        if data:
            return self._product_from_dict(data)
        return None

    def require_product(self, product_id: str) -> Product:
        product = self.get_product(product_id)
        if not product:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    def list_products(self, category: Optional[ProductCategory] = None) -> List[Product]:
        """Catalog ordered by name, optionally limited to one category"""
        filters = {"category": ProductCategory(category).value} if category else {}
        return [
            self._product_from_dict(data)
            for data in self.storage.find(self.table_name, filters, order_by="name")
        ]

    def update_product(
        self,
        product_id: str,
        name: Optional[str] = None,
        unit_price=None,
        category: Optional[ProductCategory] = None,
        description: Optional[str] = None,
        stock: Optional[int] = None,
        user_id: Optional[str] = None
    ) -> Product:
        """Update catalog fields that were supplied"""
        product = self.require_product(product_id)

        if name is not None:
            product.name = name.strip()
        if unit_price is not None:
            product.unit_price = to_amount(unit_price)
        if category is not None:
            product.category = ProductCategory(category)
        if description is not None:
            product.description = description
        if stock is not None:
            product.stock = int(stock)

        product.__post_init__()
        product.updated_at = datetime.now(timezone.utc)
        self._save_product(product)

        self.audit_trail.log_event(
            event_type=AuditEventType.PRODUCT_UPDATED,
            entity_type="product",
            entity_id=product.id,
            metadata={"unit_price": product.unit_price, "stock": product.stock},
            user_id=user_id
        )
        return product

    def decrement_stock(self, product_id: str) -> Product:
        """Take one unit out of stock after a sale; stock never drops below zero"""
        product = self.require_product(product_id)
        if product.stock > 0:
            product.stock -= 1
            product.updated_at = datetime.now(timezone.utc)
            self._save_product(product)
        else:
            logger.warning("Product %s sold with no stock on hand", product_id)
        return product

    def delete_product(self, product_id: str, user_id: Optional[str] = None) -> None:
        self.require_product(product_id)
        self.storage.delete(self.table_name, product_id)
        self.audit_trail.log_event(
            event_type=AuditEventType.PRODUCT_DELETED,
            entity_type="product",
            entity_id=product_id,
            metadata={},
            user_id=user_id
        )

    def _save_product(self, product: Product) -> None:
        self.storage.save(self.table_name, product.id, product.to_dict())

    def _product_from_dict(self, data: Dict) -> Product:
        return Product(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            name=data['name'],
            unit_price=to_amount(data.get('unit_price') or ZERO),
            category=ProductCategory(data.get('category', ProductCategory.APPLIANCE.value)),
            description=data.get('description'),
            stock=int(data.get('stock') or 0)
        )
