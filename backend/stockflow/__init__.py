# backend/stockflow/__init__.py
import time

from flask import Flask, request, g, jsonify
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import ServiceError
from .extensions import db, migrate, configure_sqlite_engine


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    with app.app_context():
        if db.engine.dialect.name == "sqlite":
            configure_sqlite_engine(db.engine)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.users import users_bp
    from .routes.organizations import organizations_bp
    from .routes.categories import categories_bp
    from .routes.products import products_bp
    from .routes.suppliers import suppliers_bp
    from .routes.customers import customers_bp
    from .routes.warehouses import warehouses_bp
    from .routes.stock import stock_bp
    from .routes.purchase_orders import purchase_orders_bp
    from .routes.orders import orders_bp
    from .routes.audit_logs import audit_logs_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(organizations_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(warehouses_bp)
    app.register_blueprint(stock_bp)
    app.register_blueprint(purchase_orders_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(audit_logs_bp)

    register_error_handlers(app)

    @app.before_request
    def start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def log_request(response):
        started = g.pop("request_started", None)
        if started is not None:
            elapsed_ms = (time.perf_counter() - started) * 1000
            app.logger.info(
                "%s %s -> %s (%.1f ms)",
                request.method, request.path, response.status_code, elapsed_ms,
            )
        return response

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = ", ".join([
                "Content-Type",
                app.config["IDENTITY_USER_ID_HEADER"],
                app.config["IDENTITY_EMAIL_HEADER"],
            ])
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def register_error_handlers(app: Flask) -> None:
    """Map service and persistence errors to JSON responses."""

    @app.errorhandler(ServiceError)
    def handle_service_error(e: ServiceError):
        db.session.rollback()
        body = {"error": str(e)}
        if e.details:
            body["details"] = e.details
        return jsonify(body), e.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(e: IntegrityError):
        db.session.rollback()
        app.logger.warning("Integrity error on %s %s: %s", request.method, request.path, e.orig)
        return jsonify({"error": "Conflict with existing data"}), 409

    @app.errorhandler(StaleDataError)
    def handle_stale_data(e: StaleDataError):
        db.session.rollback()
        return jsonify({"error": "Record was modified by another request, retry"}), 409

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return jsonify({"error": e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        db.session.rollback()
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error"}), 500
