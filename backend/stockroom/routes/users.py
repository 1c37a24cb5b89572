# Overview: Flask API routes for user administration and avatars.

"""
User routes

SECURITY: All routes require authentication.
- Listing requires VIEW_USERS
- Create requires CREATE_USER; managers cannot create administrators
- Update is open to the user themself; otherwise EDIT_USER, and role
  changes also need ASSIGN_ROLE. Managers cannot modify administrators.
- Delete requires DELETE_USER (administrators only)
- Avatars follow the update rules (MANAGE_AVATAR)
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_role
from ..errors import error_response, Forbidden, NotFound, StoreError
from ..models import User
from ..services import auth_service, avatar_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_user,
    ValidationError,
    ConflictError,
)


USER_POLICY = ModelValidationPolicy(
    writable_fields={"first_name", "last_name", "email", "designation", "role_id"},
    required_on_create={"first_name", "last_name", "email"},
)

users_bp = Blueprint("users", __name__, url_prefix="/users")


def _split_password(payload: dict):
    """Password is not a column; pull it out before column validation."""
    if not isinstance(payload, dict):
        # validate_payload rejects it
        return payload, None
    payload = dict(payload)
    password = payload.pop("password", None)
    return payload, password


@users_bp.get("")
@require_auth
@require_role("VIEW_USERS")
def list_users_route():
    users = auth_service.list_users()
    return jsonify({"users": [u.to_dict() for u in users]})


@users_bp.post("")
@require_auth
@require_role("CREATE_USER")
def create_user_route():
    """
    Create a user.

    Request body:
    {
        "first_name": "...",   // required
        "last_name": "...",    // required
        "email": "...",        // required, unique
        "password": "...",     // required, strength-checked
        "designation": "...",  // optional
        "role_id": 1           // optional, default Staff
    }
    """
    payload = request.get_json(silent=True) or {}
    payload, password = _split_password(payload)

    try:
        patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=False)
        enforce_rules_user(patch)
        user = auth_service.create_user_as(g.session_claims, patch=patch, password=password)
    except (ValidationError, ConflictError, Forbidden) as e:
        return error_response(e)

    return jsonify({"user": user.to_dict()}), 201


@users_bp.patch("/<int:user_id>")
@require_auth
def update_user_route(user_id: int):
    payload = request.get_json(silent=True) or {}
    payload, password = _split_password(payload)

    try:
        patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=True) if payload else {}
        enforce_rules_user(patch)
        user = auth_service.update_user_as(
            g.session_claims,
            user_id=user_id,
            patch=patch,
            password=password,
        )
    except (ValidationError, ConflictError, Forbidden, NotFound) as e:
        return error_response(e)

    return jsonify({"user": user.to_dict()})


@users_bp.delete("/<int:user_id>")
@require_auth
@require_role("DELETE_USER")
def delete_user_route(user_id: int):
    try:
        avatar_key = auth_service.delete_user_as(g.session_claims, user_id=user_id)
    except (ValidationError, Forbidden, NotFound) as e:
        return error_response(e)

    avatar_service.discard_blob(avatar_key)
    return jsonify({"ok": True})


@users_bp.post("/<int:user_id>/avatar")
@require_auth
def upload_avatar_route(user_id: int):
    """Multipart upload, file field "avatar". Returns {user} with the new avatar_url."""
    upload = request.files.get("avatar")
    if upload is None:
        return jsonify({"error": "avatar file is required"}), 400

    try:
        user = avatar_service.upload_avatar(
            g.session_claims,
            user_id=user_id,
            data=upload.read(),
            mime_type=upload.mimetype,
        )
    except (ValidationError, Forbidden, NotFound, StoreError) as e:
        return error_response(e)

    return jsonify({"user": user.to_dict()})


@users_bp.delete("/<int:user_id>/avatar")
@require_auth
def remove_avatar_route(user_id: int):
    try:
        user = avatar_service.remove_avatar(g.session_claims, user_id=user_id)
    except (Forbidden, NotFound) as e:
        return error_response(e)

    return jsonify({"user": user.to_dict()})
