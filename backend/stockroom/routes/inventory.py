# Overview: Flask API routes for the inventory view, vendor links, restock requests and stock figures.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_role
from ..errors import error_response
from ..models import ProductVendor, RestockOrder
from ..services import inventory_service, restock_service, reporting_service
from ..services.products_service import ProductNotFoundError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_vendor_link,
    enforce_rules_restock_request,
    ValidationError,
)


VENDOR_LINK_POLICY = ModelValidationPolicy(
    writable_fields={"vendor_id", "preferred", "lead_time_days", "supply_price"},
    required_on_create={"vendor_id"},
)

RESTOCK_REQUEST_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "vendor_id", "quantity"},
    required_on_create={"product_id", "quantity"},
)

inventory_bp = Blueprint("inventory", __name__, url_prefix="/inventory")


@inventory_bp.get("")
@require_auth
@require_role("VIEW_CATALOG")
def inventory_view_route():
    """Active products with stock and their preferred (or default) vendor."""
    return jsonify({"inventory": inventory_service.inventory_view()})


@inventory_bp.patch("/<int:product_id>/vendor")
@require_auth
@require_role("MANAGE_CATALOG")
def set_vendor_link_route(product_id: int):
    """
    Create or update a product's link to a vendor.

    Request body:
    {
        "vendor_id": 3,          // required
        "preferred": true,       // optional; clears preferred on other links
        "lead_time_days": 5,     // optional
        "supply_price": 4.25     // optional
    }
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=ProductVendor, payload=payload, policy=VENDOR_LINK_POLICY, partial=False)
        enforce_rules_vendor_link(patch)
        link = inventory_service.set_vendor_link(product_id=product_id, patch=patch)
    except ProductNotFoundError:
        return jsonify({"error": "Product not found"}), 404
    except ValidationError as e:
        return error_response(e)

    return jsonify({"link": link.to_dict()})


@inventory_bp.post("/order")
@require_auth
@require_role("REQUEST_RESTOCK")
def request_restock_route():
    """
    Create a PENDING restock order.

    Request body: {"product_id": 1, "quantity": 10, "vendor_id": 2 (optional)}
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=RestockOrder, payload=payload, policy=RESTOCK_REQUEST_POLICY, partial=False)
        enforce_rules_restock_request(patch)
        order = restock_service.request_restock(
            product_id=patch["product_id"],
            vendor_id=patch.get("vendor_id"),
            quantity=patch["quantity"],
            requester_id=g.session_claims.subject_id,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"order": order.to_dict()}), 201


@inventory_bp.get("/worth")
@require_auth
@require_role("VIEW_REPORTS")
def inventory_worth_route():
    return jsonify({"totalWorth": reporting_service.inventory_worth()})


@inventory_bp.get("/stock-by-category")
@require_auth
@require_role("VIEW_REPORTS")
def stock_by_category_route():
    try:
        result = reporting_service.stock_by_category(request.args.get("metric", "units"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(result)
