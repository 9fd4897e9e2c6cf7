# backend/stockpro/__init__.py
import logging

from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None, legacy_source=None) -> Flask:
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

    # Legacy invoice/return scanner (tests may pass an in-memory source)
    from .services import legacy_document_service
    legacy_document_service.init_app(app, legacy_source)

    # Register blueprints
    from .routes.stock import stock_bp
    from .routes.vouchers import vouchers_bp
    from .routes.counts import counts_bp

    app.register_blueprint(stock_bp)
    app.register_blueprint(vouchers_bp)
    app.register_blueprint(counts_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
