# backend/venueops/__init__.py
import logging

from flask import Flask, jsonify

from .config import Config
from .errors import BookingError
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Overrides must land before the engine is created in db.init_app
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
    from .routes.events import events_bp
    from .routes.supplies import supplies_bp
    from .routes.payments import payments_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(events_bp)
    app.register_blueprint(supplies_bp)
    app.register_blueprint(payments_bp)

    @app.errorhandler(BookingError)
    def handle_booking_error(e: BookingError):
        return jsonify(e.to_dict()), e.status_code

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
