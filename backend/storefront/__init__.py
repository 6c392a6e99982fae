# backend/storefront/__init__.py
import logging

from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(config_object=None) -> Flask:
    """
    Application factory.

    config_object is a class or import path handed to app.config.from_object;
    it defaults to Config (environment-driven).
    """
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object or Config)

    from .stores import BACKENDS
    backend = str(app.config.get("ORDER_STORE_BACKEND", "orm")).strip().lower()
    if backend not in BACKENDS:
        raise ValueError(f"ORDER_STORE_BACKEND must be one of {', '.join(BACKENDS)}, got {backend!r}")
    app.config["ORDER_STORE_BACKEND"] = backend

    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if isinstance(level, int):
        app.logger.setLevel(level)
        logging.getLogger("storefront").setLevel(level)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.products import categories_bp, products_bp
    from .routes.customers import customers_bp
    from .routes.orders import orders_bp
    from .routes.inventory import inventory_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(reports_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
