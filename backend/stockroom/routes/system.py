# backend/stockroom/routes/system.py
"""
System endpoints: health check and media files. Neither requires a token.
"""

from flask import Blueprint, current_app, jsonify, send_from_directory
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..services.storage import get_storage

system_bp = Blueprint("system", __name__)


@system_bp.get("/health")
def health_route():
    """Liveness plus a trivial database round trip."""
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Database health check failed")
        return jsonify({"status": "degraded", "database": "unavailable"}), 503
    return jsonify({"status": "ok", "database": "ok"})


@system_bp.get("/media/<path:key>")
def media_route(key: str):
    """Serve a stored blob (avatars). Missing files are 404."""
    storage = get_storage()
    return send_from_directory(storage.root, key)
