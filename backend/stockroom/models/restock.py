from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


STATUS_PENDING = "PENDING"
STATUS_APPROVED = "APPROVED"
STATUS_REJECTED = "REJECTED"
STATUS_COMPLETED = "COMPLETED"

RESTOCK_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED, STATUS_COMPLETED)


class RestockOrder(db.Model):
    """
    Request to replenish a product's stock.

    LIFECYCLE:
    1. PENDING: created by any authenticated user
    2. APPROVED: optional intermediate state (set outside this API)
    3. COMPLETED: delivery confirmed; stock incremented; immutable
    REJECTED is terminal and reachable from PENDING or APPROVED.
    """
    __tablename__ = "restock_orders"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_restock_orders_quantity_positive"),
        db.Index("ix_restock_orders_status", "status"),
        {"sqlite_autoincrement": True},
    )

    restock_id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.product_id"), nullable=False, index=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.vendor_id"), nullable=True)
    quantity = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING)

    requested_by = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=True)
    requested_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    expected_delivery = db.Column(db.DateTime(timezone=True), nullable=True)

    product = db.relationship("Product")
    vendor = db.relationship("Vendor")
    requester = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "restock_id": self.restock_id,
            "product_id": self.product_id,
            "vendor_id": self.vendor_id,
            "quantity": self.quantity,
            "status": self.status,
            "requested_by": self.requested_by,
            "requested_at": to_utc_z(self.requested_at),
            "updated_at": to_utc_z(self.updated_at),
            "expected_delivery": to_utc_z(self.expected_delivery) if self.expected_delivery else None,
            # Nested shapes the dashboard tables read
            "products": {"product_name": self.product.product_name} if self.product else None,
            "vendors": {"vendor_name": self.vendor.vendor_name} if self.vendor else None,
        }


class RestockDelivery(db.Model):
    """
    Receipt of a restock order. Exactly one per completed order; never mutated.

    The unique constraint on restock_id backs up the status compare-and-set in
    restock_service.deliver against concurrent confirmations.
    """
    __tablename__ = "restock_deliveries"
    __table_args__ = (
        db.UniqueConstraint("restock_id", name="uq_restock_deliveries_restock"),
        {"sqlite_autoincrement": True},
    )

    delivery_id = db.Column(db.Integer, primary_key=True)
    restock_id = db.Column(db.Integer, db.ForeignKey("restock_orders.restock_id"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.product_id"), nullable=False)
    quantity_received = db.Column(db.Integer, nullable=False)
    received_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    received_by = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    restock_order = db.relationship("RestockOrder", backref=db.backref("delivery", uselist=False))
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "delivery_id": self.delivery_id,
            "restock_id": self.restock_id,
            "product_id": self.product_id,
            "quantity_received": self.quantity_received,
            "received_at": to_utc_z(self.received_at),
            "received_by": self.received_by,
            "notes": self.notes,
            "products": {"product_name": self.product.product_name} if self.product else None,
        }
