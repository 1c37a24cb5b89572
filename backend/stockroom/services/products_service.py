# backend/stockroom/services/products_service.py
"""
Products Service

Products are soft-deleted only: DELETE flips is_active, and every listing,
worth figure and category breakdown that shows live stock filters on it.
SKU is globally unique.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Product, Category
from ..errors import NotFound
from ..validation import ConflictError, ValidationError

PRODUCT_MUTABLE_FIELDS = {"product_name", "sku", "price", "stock", "category_id", "is_active"}


class ProductNotFoundError(NotFound):
    def __init__(self, product_id: int):
        super().__init__("Product not found")
        self.product_id = product_id


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _check_category(category_id: int | None) -> None:
    if category_id is None:
        return
    if db.session.get(Category, category_id) is None:
        raise ValidationError(f"Unknown category_id: {category_id}")


def _check_sku_available(sku: str, *, exclude_product_id: int | None = None) -> None:
    query = db.session.query(Product).filter(Product.sku == sku)
    if exclude_product_id is not None:
        query = query.filter(Product.product_id != exclude_product_id)
    if query.first():
        raise ConflictError("SKU already exists.")


def get_product(product_id: int) -> Product:
    p = db.session.get(Product, product_id)
    if p is None:
        raise ProductNotFoundError(product_id)
    return p


def list_products(*, active: bool = True) -> list[Product]:
    """Active products (storefront) or inactive ones (restore view), by name."""
    return (
        db.session.query(Product)
        .filter(Product.is_active.is_(active))
        .order_by(Product.product_name.asc(), Product.product_id.asc())
        .all()
    )


def create_product(*, patch: dict) -> Product:
    """
    Create product using a validated patch dict.

    Raises:
        ConflictError: If SKU already exists
        ValidationError: If category_id does not exist
    """
    sku = patch.get("sku")
    if sku is None:
        raise ValidationError("sku is required")

    _check_sku_available(sku)
    _check_category(patch.get("category_id"))

    p = Product(is_active=True)
    apply_product_patch(p, patch)

    db.session.add(p)
    db.session.commit()
    return p


def update_product(*, product_id: int, patch: dict) -> Product:
    """
    Update a product. Setting is_active=true here is how a product is restored.

    Raises:
        ProductNotFoundError
        ConflictError: If new SKU already exists
    """
    p = get_product(product_id)

    if "sku" in patch and patch["sku"] != p.sku:
        _check_sku_available(patch["sku"], exclude_product_id=p.product_id)

    if "category_id" in patch:
        _check_category(patch["category_id"])

    apply_product_patch(p, patch)
    db.session.commit()
    return p


def deactivate_product(*, product_id: int) -> Product:
    """Soft-delete only: preserve ids and historical references."""
    p = get_product(product_id)
    if p.is_active:
        p.is_active = False
    db.session.commit()
    return p
