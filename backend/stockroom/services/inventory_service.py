# Overview: Service-layer operations for inventory; the stock view and product-vendor links.

"""
Inventory Service

WHY: Staff restock from a single table: every active product with its stock
and the vendor it is normally bought from.

INVARIANT: a product has at most one preferred vendor link. Only
set_vendor_link writes the preferred flag, and it clears the other links in
the same transaction as it sets the new one.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Product, Vendor, ProductVendor, Category
from ..validation import ValidationError
from .products_service import get_product


def _money(value):
    return float(value) if value is not None else None


def select_link(links: list[ProductVendor]) -> ProductVendor | None:
    """The preferred link, or the lowest vendor id when none is preferred."""
    if not links:
        return None
    for link in links:
        if link.preferred:
            return link
    return min(links, key=lambda link: link.vendor_id)


def get_link(product_id: int, vendor_id: int) -> ProductVendor | None:
    return db.session.get(ProductVendor, (product_id, vendor_id))


def get_default_link(product_id: int) -> ProductVendor | None:
    links = db.session.query(ProductVendor).filter(ProductVendor.product_id == product_id).all()
    return select_link(links)


def inventory_view() -> list[dict]:
    """
    One row per active product, ordered by name.

    Vendor columns come from the selected link and are null when the product
    has no links at all.
    """
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(Product.product_name.asc(), Product.product_id.asc())
        .all()
    )
    if not products:
        return []

    product_ids = [p.product_id for p in products]
    links = (
        db.session.query(ProductVendor)
        .filter(ProductVendor.product_id.in_(product_ids))
        .all()
    )
    links_by_product: dict[int, list[ProductVendor]] = {}
    for link in links:
        links_by_product.setdefault(link.product_id, []).append(link)

    categories = {c.category_id: c.category_name for c in db.session.query(Category).all()}

    rows = []
    for p in products:
        link = select_link(links_by_product.get(p.product_id, []))
        rows.append({
            "product_id": p.product_id,
            "product_name": p.product_name,
            "sku": p.sku,
            "stock": p.stock,
            "price": _money(p.price),
            "category_id": p.category_id,
            "category_name": categories.get(p.category_id),
            "vendor_id": link.vendor_id if link else None,
            "vendor_name": link.vendor.vendor_name if link else None,
            "preferred": link.preferred if link else False,
            "lead_time_days": link.lead_time_days if link else None,
            "supply_price": _money(link.supply_price) if link else None,
        })
    return rows


def set_vendor_link(*, product_id: int, patch: dict) -> ProductVendor:
    """
    Create or update the (product, vendor) link.

    patch is validated upstream and carries vendor_id plus any of preferred,
    lead_time_days and supply_price. Fields not present keep their stored
    values on an existing link.

    When preferred is true, every other link of the product is cleared in
    the same transaction: one bulk UPDATE, the upsert, one commit.

    Raises:
        ProductNotFoundError: unknown product
        ValidationError: unknown or inactive vendor
    """
    get_product(product_id)

    vendor_id = patch["vendor_id"]
    vendor = db.session.get(Vendor, vendor_id)
    if vendor is None:
        raise ValidationError(f"Unknown vendor_id: {vendor_id}")
    if not vendor.is_active:
        raise ValidationError("Vendor is inactive")

    try:
        if patch.get("preferred"):
            (
                db.session.query(ProductVendor)
                .filter(
                    ProductVendor.product_id == product_id,
                    ProductVendor.vendor_id != vendor_id,
                    ProductVendor.preferred.is_(True),
                )
                .update({ProductVendor.preferred: False}, synchronize_session="fetch")
            )

        link = get_link(product_id, vendor_id)
        if link is None:
            link = ProductVendor(product_id=product_id, vendor_id=vendor_id, preferred=False)
            db.session.add(link)

        for key in ("preferred", "lead_time_days", "supply_price"):
            if key in patch:
                setattr(link, key, patch[key])

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return link
