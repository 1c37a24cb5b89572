# Overview: Flask API routes for restock orders and delivery confirmation.

"""
Restock routes

SECURITY: All routes require authentication.
- Listing requires VIEW_RESTOCK
- Delivery confirmation requires DELIVER_RESTOCK (managers and administrators)

New orders are created through POST /inventory/order.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_role
from ..services import restock_service
from ..services.restock_service import RestockNotFoundError
from ..validation import ValidationError, ConflictError


restock_bp = Blueprint("restock", __name__, url_prefix="/restock")


@restock_bp.get("/orders")
@require_auth
@require_role("VIEW_RESTOCK")
def list_orders_route():
    """
    Open restock orders, newest first.

    Query parameters:
    - status: only orders in this status (COMPLETED included when asked for)
    """
    try:
        orders = restock_service.list_orders(status=request.args.get("status"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"orders": [o.to_dict() for o in orders]})


@restock_bp.get("/deliveries")
@require_auth
@require_role("VIEW_RESTOCK")
def list_deliveries_route():
    deliveries = restock_service.list_deliveries()
    return jsonify({"deliveries": [d.to_dict() for d in deliveries]})


@restock_bp.post("/orders/<int:restock_id>/deliver")
@require_auth
@require_role("DELIVER_RESTOCK")
def deliver_route(restock_id: int):
    """
    Confirm delivery: order -> COMPLETED, stock += quantity, delivery row written.

    Request body (optional): {"notes": "..."}

    Returns 201 {delivery, order}; 409 if the order is already completed or rejected.
    """
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    elif not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    notes = data.get("notes")
    if notes is not None and not isinstance(notes, str):
        return jsonify({"error": "notes must be a string"}), 400

    try:
        delivery, order = restock_service.deliver(
            restock_id=restock_id,
            actor_id=g.session_claims.subject_id,
            notes=notes.strip() if notes else None,
        )
    except RestockNotFoundError:
        return jsonify({"error": "Restock order not found"}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify({"delivery": delivery.to_dict(), "order": order.to_dict()}), 201
