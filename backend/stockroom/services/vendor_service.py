# Overview: Service-layer operations for vendors; encapsulates business logic and database work.

"""
Vendor Service

WHY: Vendors are the suppliers restock orders are placed with. A product may
be supplied by several vendors through ProductVendor links (see
inventory_service.set_vendor_link for the preferred-vendor rule).

DESIGN:
- Vendors are never hard-deleted; deactivation hides them from the default
  listing and blocks new links and restock orders against them
- Inactive vendors can still be edited, which is how they are restored
"""

from __future__ import annotations

from ..extensions import db
from ..models import Vendor
from ..errors import NotFound
from ..validation import ValidationError


ACTIVE_FILTERS = {"true", "false", "all"}


class VendorNotFoundError(NotFound):
    """Raised when a vendor is not found."""

    def __init__(self, vendor_id: int):
        super().__init__("Vendor not found")
        self.vendor_id = vendor_id


def get_vendor(vendor_id: int) -> Vendor:
    vendor = db.session.get(Vendor, vendor_id)
    if vendor is None:
        raise VendorNotFoundError(vendor_id)
    return vendor


def list_vendors(*, active: str = "true") -> list[Vendor]:
    """
    List vendors.

    Args:
        active: "true" (default), "false", or "all"

    Raises:
        ValidationError: on any other filter value
    """
    active = (active or "true").strip().lower()
    if active not in ACTIVE_FILTERS:
        raise ValidationError("active must be one of: true, false, all")

    query = db.session.query(Vendor)
    if active == "true":
        query = query.filter(Vendor.is_active.is_(True))
    elif active == "false":
        query = query.filter(Vendor.is_active.is_(False))

    return query.order_by(Vendor.vendor_name.asc(), Vendor.vendor_id.asc()).all()


def create_vendor(*, patch: dict) -> Vendor:
    """Create a vendor from a validated patch (vendor_name required)."""
    vendor = Vendor(is_active=True)
    for key, value in patch.items():
        setattr(vendor, key, value)

    db.session.add(vendor)
    db.session.commit()
    return vendor


def update_vendor(*, vendor_id: int, patch: dict) -> Vendor:
    """
    Update an existing vendor.

    Raises:
        VendorNotFoundError: If vendor not found
    """
    vendor = get_vendor(vendor_id)
    for key, value in patch.items():
        setattr(vendor, key, value)
    db.session.commit()
    return vendor


def deactivate_vendor(*, vendor_id: int) -> Vendor:
    """
    Soft-delete a vendor.

    Existing product links are kept so history still resolves vendor names.
    """
    vendor = get_vendor(vendor_id)
    vendor.is_active = False
    db.session.commit()
    return vendor
