from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


class Order(db.Model):
    """
    Historical sales order. Written by the point-of-sale front end; this
    service only reads it for revenue figures.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_order_date", "order_date"),
        {"sqlite_autoincrement": True},
    )

    order_id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, nullable=True)
    order_date = db.Column(db.DateTime(timezone=True), nullable=False)
    total = db.Column(db.Numeric(12, 2), nullable=True)
    status = db.Column(db.String(32), nullable=True)

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "customer_id": self.customer_id,
            "order_date": to_utc_z(self.order_date),
            "total": float(self.total) if self.total is not None else None,
            "status": self.status,
        }


class OrderItem(db.Model):
    __tablename__ = "order_items"
    __table_args__ = ({"sqlite_autoincrement": True},)

    order_item_id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.order_id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.product_id"), nullable=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=True)

    order = db.relationship("Order", backref=db.backref("items", lazy=True))
