# backend/chaintrack/__init__.py
import logging

from flask import Flask, current_app, jsonify, request

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.products import products_bp
    from .routes.locations import locations_bp
    from .routes.transactions import transactions_bp
    from .routes.logistics import logistics_bp
    from .routes.analytics import analytics_bp
    from .routes.notifications import notifications_bp
    from .routes.reports import reports_bp
    from .routes.profiles import profiles_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(locations_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(logistics_bp)
    app.register_blueprint(analytics_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(profiles_bp)

    from .services.concurrency import StoreError

    @app.errorhandler(StoreError)
    def handle_store_error(exc):
        current_app.logger.exception("Storage failure while handling %s %s", request.method, request.path)
        return jsonify({"error": "Storage unavailable"}), 503

    allowed_origins = {
        origin.strip()
        for origin in str(app.config.get("CORS_ALLOWED_ORIGINS", "")).split(",")
        if origin.strip()
    }

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
