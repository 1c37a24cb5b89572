# Overview: Service-layer operations for reporting; sales, revenue and inventory aggregates.

"""
Reporting Service

Read-only aggregates for the dashboard cards and charts. All date windows
are half-open and UTC-naive: a day is [00:00, next day 00:00).

Sales totals come from the orders table written by the point-of-sale front
end. Totals that are null or not finite numbers are skipped, not treated as
errors.
"""

from __future__ import annotations

import math
from datetime import date, datetime
from decimal import Decimal

from ..extensions import db
from ..models import Order, Product, Category
from ..validation import ValidationError
from stockroom.time_utils import utcnow, parse_iso_date, day_bounds


UNCATEGORIZED = "Uncategorized"
STOCK_METRICS = ("units", "value")


def _as_number(value) -> float | None:
    """Float value of a stored amount, or None when it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        if not value.is_finite():
            return None
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def sales_for_day(date_str: str | None = None) -> tuple[float, date]:
    """
    Sum of order totals for one calendar day (default: today).

    Returns (total, day).

    Raises:
        ValidationError: date_str is not YYYY-MM-DD
    """
    try:
        day = parse_iso_date(date_str)
    except ValueError:
        raise ValidationError("date must be in YYYY-MM-DD format")
    if day is None:
        day = utcnow().date()

    start, end = day_bounds(day)
    totals = (
        db.session.query(Order.total)
        .filter(Order.order_date >= start, Order.order_date < end)
        .all()
    )

    total = 0.0
    for (amount,) in totals:
        number = _as_number(amount)
        if number is not None:
            total += number
    return round(total, 2), day


def monthly_revenue(year: int | None = None) -> list[float]:
    """
    Revenue per calendar month, index 0 = January.

    Without a year every order is bucketed by its month regardless of year.
    """
    query = db.session.query(Order.order_date, Order.total)
    if year is not None:
        if year < 1 or year > 9998:
            raise ValidationError("year is out of range")
        query = query.filter(
            Order.order_date >= datetime(year, 1, 1),
            Order.order_date < datetime(year + 1, 1, 1),
        )

    buckets = [0.0] * 12
    for order_date, amount in query.all():
        number = _as_number(amount)
        if order_date is None or number is None:
            continue
        buckets[order_date.month - 1] += number
    return [round(value, 2) for value in buckets]


def inventory_worth() -> float:
    """Sum of price * stock over active products."""
    rows = (
        db.session.query(Product.price, Product.stock)
        .filter(Product.is_active.is_(True))
        .all()
    )
    total = 0.0
    for price, stock in rows:
        price_value = _as_number(price)
        stock_value = _as_number(stock)
        if price_value is None or stock_value is None:
            continue
        total += price_value * stock_value
    return round(total, 2)


def stock_by_category(metric: str = "units") -> dict:
    """
    Active stock grouped by category name, largest first.

    metric="units" sums stock; metric="value" sums price * stock. Products
    with no category, an unknown category or an inactive one are grouped
    under "Uncategorized".

    Products and categories are read with two queries and joined here.
    """
    metric = (metric or "units").strip().lower()
    if metric not in STOCK_METRICS:
        raise ValidationError("metric must be 'units' or 'value'")

    products = (
        db.session.query(Product.category_id, Product.price, Product.stock)
        .filter(Product.is_active.is_(True))
        .all()
    )
    category_names = {
        category_id: name
        for category_id, name in db.session.query(Category.category_id, Category.category_name)
        .filter(Category.is_active.is_(True))
        .all()
    }

    grouped: dict[str, float] = {}
    for category_id, price, stock in products:
        stock_value = _as_number(stock)
        if stock_value is None:
            continue
        if metric == "value":
            price_value = _as_number(price)
            if price_value is None:
                continue
            amount = price_value * stock_value
        else:
            amount = stock_value
        label = category_names.get(category_id, UNCATEGORIZED)
        grouped[label] = grouped.get(label, 0.0) + amount

    ordered = sorted(grouped.items(), key=lambda item: (-item[1], item[0]))
    if metric == "units":
        data = [int(value) for _, value in ordered]
    else:
        data = [round(value, 2) for _, value in ordered]

    return {
        "labels": [label for label, _ in ordered],
        "data": data,
        "metric": metric,
    }
