"""
Product catalog endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, status

from .deps import HANDLED_ERRORS, get_billing_system, http_error
from .schemas import CreateProductRequest, UpdateProductRequest, product_response
from ..products import ProductCategory
from ..system import BillingSystem


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_product(
    request: CreateProductRequest,
    system: BillingSystem = Depends(get_billing_system)
):
    """Create a catalog entry"""
    try:
        product = system.product_catalog.create_product(
            name=request.name,
            unit_price=request.unit_price,
            category=ProductCategory(request.category),
            description=request.description,
            stock=request.stock,
            user_id=system.user_id
        )
        return {"product_id": product.id, "message": "Product created successfully"}

    except HANDLED_ERRORS as e:
        raise http_error(e)


@router.get("")
async def list_products(
    category: Optional[str] = None,
    system: BillingSystem = Depends(get_billing_system)
):
    """List catalog entries"""
    try:
        products = system.product_catalog.list_products(
            ProductCategory(category) if category else None
        )
        return {"products": [product_response(product) for product in products]}

    except HANDLED_ERRORS as e:
        raise http_error(e)


@router.get("/{product_id}")
async def get_product(
    product_id: str,
    system: BillingSystem = Depends(get_billing_system)
):
    """Get product by ID"""
    try:
        return product_response(system.product_catalog.require_product(product_id))

    except HANDLED_ERRORS as e:
        raise http_error(e)


@router.put("/{product_id}")
async def update_product(
    product_id: str,
    request: UpdateProductRequest,
    system: BillingSystem = Depends(get_billing_system)
):
    """Update a catalog entry"""
    try:
        product = system.product_catalog.update_product(
            product_id,
            name=request.name,
            unit_price=request.unit_price,
            category=ProductCategory(request.category) if request.category else None,
            description=request.description,
            stock=request.stock,
            user_id=system.user_id
        )
        return product_response(product)

    except HANDLED_ERRORS as e:
        raise http_error(e)


@router.delete("/{product_id}")
async def delete_product(
    product_id: str,
    system: BillingSystem = Depends(get_billing_system)
):
    """Delete a catalog entry"""
    try:
        system.product_catalog.delete_product(product_id, user_id=system.user_id)
        return {"message": "Product deleted successfully"}

    except HANDLED_ERRORS as e:
        raise http_error(e)
