# Overview: Flask API routes for vendor operations; parses input and returns JSON responses.

"""
Vendor Routes

SECURITY: All routes require authentication.
- View operations require VIEW_CATALOG
- Create/update/deactivate require MANAGE_CATALOG
"""

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_role
from ..models import Vendor
from ..services import vendor_service
from ..services.vendor_service import VendorNotFoundError
from ..validation import ModelValidationPolicy, validate_payload, ValidationError


VENDOR_POLICY = ModelValidationPolicy(
    writable_fields={"vendor_name", "contact_email", "contact_phone", "address", "is_active"},
    required_on_create={"vendor_name"},
)

vendors_bp = Blueprint("vendors", __name__, url_prefix="/vendors")


@vendors_bp.get("")
@require_auth
@require_role("VIEW_CATALOG")
def list_vendors_route():
    """
    List vendors.

    Query parameters:
    - active: "true" (default), "false", or "all"

    Returns:
        {vendors: Vendor[]}
    """
    try:
        vendors = vendor_service.list_vendors(active=request.args.get("active", "true"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"vendors": [v.to_dict() for v in vendors]})


@vendors_bp.post("")
@require_auth
@require_role("MANAGE_CATALOG")
def create_vendor_route():
    """
    Create a new vendor.

    Request body:
    {
        "vendor_name": "Vendor Name",  // required
        "contact_email": "...",        // optional
        "contact_phone": "...",        // optional
        "address": "..."               // optional
    }
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Vendor, payload=payload, policy=VENDOR_POLICY, partial=False)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    vendor = vendor_service.create_vendor(patch=patch)
    return jsonify({"vendor": vendor.to_dict()}), 201


@vendors_bp.patch("/<int:vendor_id>")
@require_auth
@require_role("MANAGE_CATALOG")
def update_vendor_route(vendor_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Vendor, payload=payload, policy=VENDOR_POLICY, partial=True)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        vendor = vendor_service.update_vendor(vendor_id=vendor_id, patch=patch)
    except VendorNotFoundError:
        return jsonify({"error": "Vendor not found"}), 404

    return jsonify({"vendor": vendor.to_dict()})


@vendors_bp.delete("/<int:vendor_id>")
@require_auth
@require_role("MANAGE_CATALOG")
def deactivate_vendor_route(vendor_id: int):
    """Soft delete; the vendor stays listed under ?active=false."""
    try:
        vendor = vendor_service.deactivate_vendor(vendor_id=vendor_id)
    except VendorNotFoundError:
        return jsonify({"error": "Vendor not found"}), 404

    return jsonify({"vendor": vendor.to_dict()})
