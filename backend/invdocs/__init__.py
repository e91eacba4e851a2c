# backend/invdocs/__init__.py
from flask import Flask, request
from sqlalchemy.exc import OperationalError
from werkzeug.exceptions import RequestEntityTooLarge

from .config import Config
from .extensions import db, migrate
from .validation import ConflictError, StoreUnavailableError



def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.inventory import inventory_bp
    from .routes.reports import reports_bp
    from .routes.orders import orders_bp, sales_bp
    from .routes.documents import documents_bp
    from .routes.logs import logs_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(documents_bp)
    app.register_blueprint(logs_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config.get("CORS_ALLOWED_ORIGINS", set()):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type, X-Username, X-File-Name"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    @app.errorhandler(StoreUnavailableError)
    def handle_store_unavailable(e):
        app.logger.error("Store unavailable: %s", e)
        return {"error": str(e) or "Storage unavailable"}, 500

    @app.errorhandler(OperationalError)
    def handle_operational_error(e):
        db.session.rollback()
        app.logger.exception("Database unavailable")
        return {"error": "Database unavailable"}, 500

    @app.errorhandler(ConflictError)
    def handle_conflict(e):
        return {"error": str(e)}, 409

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(e):
        return {"error": "File too large"}, 413

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    if app.config.get("AUTO_BOOTSTRAP"):
        from .services.auth_service import ensure_default_admin
        with app.app_context():
            db.create_all()
            ensure_default_admin()
            app.logger.info("Database ready; default admin checked")

    return app
