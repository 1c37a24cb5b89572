# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .errors import Unauthenticated
from .services import session_service, permission_service
from .services.permission_service import PermissionDeniedError


def _is_authenticated() -> bool:
    return hasattr(g, 'session_claims')


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.session_claims (SessionClaims: subject_id, email, role).

    SECURITY: Returns 401 if:
    - No Authorization header, or not a Bearer header
    - Token signature invalid, malformed, or expired
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1].strip()

        try:
            claims = session_service.verify_token(token)
        except Unauthenticated as e:
            return jsonify({"error": str(e)}), 401

        g.session_claims = claims

        return f(*args, **kwargs)

    return decorated_function


def require_role(action: str):
    """
    Require the caller's role to be allowed to perform an action.

    Only the baseline table is checked here. Target-aware rules (self-service,
    manager vs administrator) need the target row and run in the service.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            try:
                permission_service.authorize(g.session_claims.role, action)
            except PermissionDeniedError:
                return jsonify({"error": "Forbidden"}), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
