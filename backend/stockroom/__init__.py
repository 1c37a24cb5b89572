# backend/stockroom/__init__.py
import os

from flask import Flask, request, jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .config import Config
from .extensions import db, migrate



def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    _init_components(app)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.users import users_bp
    from .routes.products import products_bp
    from .routes.categories import categories_bp
    from .routes.vendors import vendors_bp
    from .routes.inventory import inventory_bp
    from .routes.restock import restock_bp
    from .routes.reports import reports_bp
    from .routes.ask import ask_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(vendors_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(restock_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(ask_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin in app.config.get("CORS_ALLOWED_ORIGINS", ()):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    _register_error_handlers(app)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def _init_components(app: Flask) -> None:
    """Objects built once from config; tests replace them in app.extensions."""
    from .services.session_service import TokenService, EXTENSION_KEY as TOKENS_KEY
    from .services.ask_service import build_bridge, EXTENSION_KEY as ASK_KEY
    from .services.storage import LocalBlobStorage, EXTENSION_KEY as MEDIA_KEY

    media_root = app.config.get("MEDIA_ROOT") or os.path.join(app.instance_path, "media")

    app.extensions[TOKENS_KEY] = TokenService(
        app.config["SECRET_KEY"],
        ttl_minutes=app.config.get("TOKEN_TTL_MINUTES", 60),
    )
    app.extensions[ASK_KEY] = build_bridge(app.config)
    app.extensions[MEDIA_KEY] = LocalBlobStorage(
        media_root,
        base_url=app.config.get("MEDIA_URL_PREFIX", "/media"),
    )


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(exc):
        db.session.rollback()
        current_app.logger.exception("Database error on %s %s", request.method, request.path)
        orig = getattr(exc, "orig", None)
        return jsonify({"error": "Database error", "detail": str(orig or exc)}), 500

    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        return jsonify({"error": exc.name}), exc.code
