from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


def _money(value) -> float | None:
    return float(value) if value is not None else None


class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("category_name", name="uq_categories_name"),
        {"sqlite_autoincrement": True},
    )

    category_id = db.Column(db.Integer, primary_key=True)
    category_name = db.Column(db.String(120), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self) -> dict:
        return {
            "category_id": self.category_id,
            "category_name": self.category_name,
            "is_active": self.is_active,
        }


class Product(db.Model):
    """
    Product master data.

    SOFT DELETE: products are never removed; DELETE flips is_active. Inactive
    products are excluded from the storefront listing, the inventory view,
    inventory worth, and the stock-by-category breakdown.

    stock is the authoritative on-hand count. It is only incremented by a
    restock delivery or set directly by a catalog edit.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.Index("ix_products_active_name", "is_active", "product_name"),
        {"sqlite_autoincrement": True},
    )

    product_id = db.Column(db.Integer, primary_key=True)

    product_name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.category_id"), nullable=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product product_id={self.product_id} sku={self.sku!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "sku": self.sku,
            "price": _money(self.price),
            "stock": self.stock,
            "category_id": self.category_id,
            "category_name": self.category.category_name if self.category else None,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Vendor(db.Model):
    """Suppliers. Soft-deleted like products."""
    __tablename__ = "vendors"
    __table_args__ = (
        db.Index("ix_vendors_active_name", "is_active", "vendor_name"),
        {"sqlite_autoincrement": True},
    )

    vendor_id = db.Column(db.Integer, primary_key=True)
    vendor_name = db.Column(db.String(255), nullable=False)
    contact_email = db.Column(db.String(255), nullable=True)
    contact_phone = db.Column(db.String(64), nullable=True)
    address = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "vendor_id": self.vendor_id,
            "vendor_name": self.vendor_name,
            "contact_email": self.contact_email,
            "contact_phone": self.contact_phone,
            "address": self.address,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class ProductVendor(db.Model):
    """
    Supply link between a product and a vendor.

    INVARIANT: at most one link per product has preferred=True. The database
    does not enforce this; inventory_service.set_vendor_link does, inside a
    single transaction.
    """
    __tablename__ = "product_vendors"

    product_id = db.Column(db.Integer, db.ForeignKey("products.product_id"), primary_key=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.vendor_id"), primary_key=True)
    supply_price = db.Column(db.Numeric(10, 2), nullable=True)
    lead_time_days = db.Column(db.Integer, nullable=True)
    preferred = db.Column(db.Boolean, nullable=False, default=False)

    product = db.relationship("Product", backref=db.backref("vendor_links", lazy=True))
    vendor = db.relationship("Vendor", backref=db.backref("product_links", lazy=True))

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "vendor_id": self.vendor_id,
            "vendor_name": self.vendor.vendor_name if self.vendor else None,
            "supply_price": _money(self.supply_price),
            "lead_time_days": self.lead_time_days,
            "preferred": self.preferred,
        }
