# backend/atelier/__init__.py
import logging
import os

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from .config import Config
from .extensions import db, mail, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    logging.getLogger("atelier").setLevel(app.config.get("LOG_LEVEL", "INFO"))

    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    mail.init_app(app)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.users import users_bp, admin_users_bp
    from .routes.customers import customers_bp
    from .routes.suppliers import suppliers_bp
    from .routes.deliveries import deliveries_bp
    from .routes.stock import stock_bp
    from .routes.jewellery import jewellery_bp
    from .routes.locker import locker_bp
    from .routes.designs import designs_bp
    from .routes.orders import orders_bp
    from .routes.admin_dashboard import admin_dashboard_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(admin_users_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(deliveries_bp)
    app.register_blueprint(stock_bp)
    app.register_blueprint(jewellery_bp)
    app.register_blueprint(locker_bp)
    app.register_blueprint(designs_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(admin_dashboard_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin == app.config.get("CLIENT_URL"):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        # 404 / 405 / 413 etc. as JSON for API clients
        return jsonify({"error": e.description, "status": e.code}), e.code

    @app.errorhandler(413)
    def handle_too_large(e):
        limit_mb = app.config["MAX_CONTENT_LENGTH"] // (1024 * 1024)
        return jsonify({"error": f"Upload exceeds {limit_mb} MB limit", "status": 413}), 413

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        if isinstance(e, HTTPException):
            return handle_http_error(e)
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error"}), 500

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
