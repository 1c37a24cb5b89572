# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/stockroom/routes/products.py
"""
Product management routes.

SECURITY: All routes require authentication.
- Read operations require VIEW_CATALOG
- Write operations require MANAGE_CATALOG

DELETE is a soft delete; PATCH {"is_active": true} restores.
"""
from flask import Blueprint, request, jsonify

from ..errors import error_response
from ..models import Product
from ..services import products_service
from ..services.products_service import ProductNotFoundError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth, require_role

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"product_name", "sku", "price", "stock", "category_id", "is_active"},
    required_on_create={"product_name", "sku", "price", "stock"},
)

products_bp = Blueprint("products", __name__, url_prefix="/products")


@products_bp.get("")
@require_auth
@require_role("VIEW_CATALOG")
def list_products_route():
    """Active products, by name."""
    products = products_service.list_products(active=True)
    return jsonify({"products": [p.to_dict() for p in products]})


@products_bp.get("/inactive")
@require_auth
@require_role("VIEW_CATALOG")
def list_inactive_products_route():
    """Soft-deleted products, for the restore view."""
    products = products_service.list_products(active=False)
    return jsonify({"products": [p.to_dict() for p in products]})


@products_bp.post("")
@require_auth
@require_role("MANAGE_CATALOG")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        product = products_service.create_product(patch=patch)
    except (ConflictError, ValidationError) as e:
        return error_response(e)

    return jsonify({"product": product.to_dict()}), 201


@products_bp.patch("/<int:product_id>")
@require_auth
@require_role("MANAGE_CATALOG")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        product = products_service.update_product(product_id=product_id, patch=patch)
    except ProductNotFoundError:
        return jsonify({"error": "Product not found"}), 404
    except (ConflictError, ValidationError) as e:
        return error_response(e)

    return jsonify({"product": product.to_dict()})


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role("MANAGE_CATALOG")
def delete_product_route(product_id: int):
    try:
        product = products_service.deactivate_product(product_id=product_id)
    except ProductNotFoundError:
        return jsonify({"error": "Product not found"}), 404

    return jsonify({"product": product.to_dict()})
