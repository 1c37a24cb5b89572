# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication routes

POST /login issues a signed bearer token; there is no logout endpoint
because tokens are not tracked server-side (they simply expire).
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services.auth_service import UserNotFoundError
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__)


@auth_bp.post("/login")
def login_route():
    """
    Authenticate by email and password.

    Returns {token, user}. The token goes in the Authorization header
    ("Bearer <token>") for every other route.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        return jsonify({"error": "email and password required"}), 400

    try:
        user = auth_service.authenticate(email, password)
        if not user:
            current_app.logger.info("Failed login for %s", email)
            return jsonify({"error": "Invalid credentials"}), 401

        token = session_service.issue_token(user)
        return jsonify({"token": token, "user": user.to_dict()}), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    try:
        user = auth_service.get_user(g.session_claims.subject_id)
    except UserNotFoundError:
        return jsonify({"error": "User not found"}), 404
    return jsonify({"user": user.to_dict()})
