# Overview: Flask API routes for product categories.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_role
from ..errors import error_response
from ..models import Category
from ..services import category_service
from ..services.category_service import CategoryNotFoundError
from ..validation import ModelValidationPolicy, validate_payload, ValidationError, ConflictError


CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"category_name", "is_active"},
    required_on_create={"category_name"},
)

categories_bp = Blueprint("categories", __name__, url_prefix="/categories")


@categories_bp.get("")
@require_auth
@require_role("VIEW_CATALOG")
def list_categories_route():
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    categories = category_service.list_categories(include_inactive=include_inactive)
    return jsonify({"categories": [c.to_dict() for c in categories]})


@categories_bp.post("")
@require_auth
@require_role("MANAGE_CATALOG")
def create_category_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
        category = category_service.create_category(patch=patch)
    except (ValidationError, ConflictError) as e:
        return error_response(e)
    return jsonify({"category": category.to_dict()}), 201


@categories_bp.patch("/<int:category_id>")
@require_auth
@require_role("MANAGE_CATALOG")
def update_category_route(category_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)
        category = category_service.update_category(category_id=category_id, patch=patch)
    except CategoryNotFoundError:
        return jsonify({"error": "Category not found"}), 404
    except (ValidationError, ConflictError) as e:
        return error_response(e)
    return jsonify({"category": category.to_dict()})


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_role("MANAGE_CATALOG")
def delete_category_route(category_id: int):
    try:
        category = category_service.deactivate_category(category_id=category_id)
    except CategoryNotFoundError:
        return jsonify({"error": "Category not found"}), 404
    return jsonify({"category": category.to_dict()})
