# Overview: Service-layer operations for restock orders and deliveries.

"""
Restock Workflow

LIFECYCLE:
    PENDING -> APPROVED -> COMPLETED
    PENDING -> COMPLETED
    PENDING | APPROVED -> REJECTED
Transitions only move forward. COMPLETED and REJECTED are terminal.

WHY deliver is one transaction: confirming a delivery must flip the order to
COMPLETED, add the quantity to product stock, and write the delivery row,
or do none of these. Two managers pressing "delivered" at the same time must
not double the stock.

CONCURRENCY:
- The status flip is a compare-and-set UPDATE (WHERE status IN deliverable);
  only one caller sees rowcount == 1
- The stock increment is a relative UPDATE (stock = stock + qty)
- restock_deliveries.restock_id is unique, so a duplicate delivery row fails
  at commit even across processes
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, Vendor, RestockOrder, RestockDelivery
from ..models.restock import (
    STATUS_PENDING,
    STATUS_APPROVED,
    STATUS_REJECTED,
    STATUS_COMPLETED,
    RESTOCK_STATUSES,
)
from ..errors import NotFound
from ..validation import ConflictError, ValidationError
from .inventory_service import get_link, get_default_link
from stockroom.time_utils import utcnow


ALLOWED_TRANSITIONS = {
    STATUS_PENDING: {STATUS_APPROVED, STATUS_REJECTED, STATUS_COMPLETED},
    STATUS_APPROVED: {STATUS_REJECTED, STATUS_COMPLETED},
}

DELIVERABLE_STATUSES = tuple(
    status for status, targets in ALLOWED_TRANSITIONS.items() if STATUS_COMPLETED in targets
)


class RestockNotFoundError(NotFound):
    def __init__(self, restock_id: int):
        super().__init__("Restock order not found")
        self.restock_id = restock_id


def request_restock(
    *,
    product_id: int,
    quantity: int,
    requester_id: int | None,
    vendor_id: int | None = None,
) -> RestockOrder:
    """
    Create a PENDING restock order.

    When vendor_id is omitted the product's preferred (or default) vendor is
    used. expected_delivery is requested_at + the link's lead time, or null
    when no lead time is known.

    Raises:
        ValidationError: unknown/inactive product or vendor, bad quantity
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("quantity must be > 0")

    product = db.session.get(Product, product_id)
    if product is None:
        raise ValidationError(f"Unknown product_id: {product_id}")
    if not product.is_active:
        raise ValidationError("Cannot restock an inactive product")

    if vendor_id is not None:
        vendor = db.session.get(Vendor, vendor_id)
        if vendor is None:
            raise ValidationError(f"Unknown vendor_id: {vendor_id}")
        if not vendor.is_active:
            raise ValidationError("Vendor is inactive")
        link = get_link(product_id, vendor_id)
    else:
        link = get_default_link(product_id)
        if link is not None and link.vendor.is_active:
            vendor_id = link.vendor_id
        else:
            link = None

    requested_at = utcnow()
    expected_delivery = None
    if link is not None and link.lead_time_days is not None:
        expected_delivery = requested_at + timedelta(days=link.lead_time_days)

    order = RestockOrder(
        product_id=product_id,
        vendor_id=vendor_id,
        quantity=quantity,
        status=STATUS_PENDING,
        requested_by=requester_id,
        requested_at=requested_at,
        expected_delivery=expected_delivery,
    )
    db.session.add(order)
    db.session.commit()
    return order


def list_orders(*, status: str | None = None) -> list[RestockOrder]:
    """
    Open orders (anything not COMPLETED), newest first.

    An explicit status filter returns exactly that status, COMPLETED included.
    """
    query = db.session.query(RestockOrder)
    if status:
        status = status.strip().upper()
        if status not in RESTOCK_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(RESTOCK_STATUSES)}")
        query = query.filter(RestockOrder.status == status)
    else:
        query = query.filter(RestockOrder.status != STATUS_COMPLETED)

    return query.order_by(RestockOrder.requested_at.desc(), RestockOrder.restock_id.desc()).all()


def list_deliveries() -> list[RestockDelivery]:
    return (
        db.session.query(RestockDelivery)
        .order_by(RestockDelivery.received_at.desc(), RestockDelivery.delivery_id.desc())
        .all()
    )


def deliver(*, restock_id: int, actor_id: int | None, notes: str | None = None) -> tuple[RestockDelivery, RestockOrder]:
    """
    Confirm delivery of a restock order.

    Returns (delivery, order). Nothing is written unless every step succeeds.

    Raises:
        RestockNotFoundError: no such order
        ConflictError: order is already COMPLETED or REJECTED, or a concurrent
            delivery won the race
    """
    try:
        flipped = db.session.execute(
            update(RestockOrder)
            .where(
                RestockOrder.restock_id == restock_id,
                RestockOrder.status.in_(DELIVERABLE_STATUSES),
            )
            .values(status=STATUS_COMPLETED, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )

        if flipped.rowcount != 1:
            db.session.rollback()
            existing = db.session.get(RestockOrder, restock_id, populate_existing=True)
            if existing is None:
                raise RestockNotFoundError(restock_id)
            raise ConflictError(f"Restock order {restock_id} is already {existing.status}")

        order = db.session.get(RestockOrder, restock_id, populate_existing=True)

        db.session.execute(
            update(Product)
            .where(Product.product_id == order.product_id)
            .values(stock=Product.stock + order.quantity)
            .execution_options(synchronize_session=False)
        )

        delivery = RestockDelivery(
            restock_id=order.restock_id,
            product_id=order.product_id,
            quantity_received=order.quantity,
            received_at=utcnow(),
            received_by=actor_id,
            notes=notes,
        )
        db.session.add(delivery)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Restock order {restock_id} was already delivered")
    except Exception:
        db.session.rollback()
        raise

    product = db.session.get(Product, order.product_id)
    current_app.logger.info(
        "Restock %s delivered: product %s +%s (stock now %s) by user %s",
        restock_id,
        order.product_id,
        order.quantity,
        product.stock if product else None,
        actor_id,
    )
    return delivery, order
