"""
Flask application factory.

Creates the app, configures logging, registers blueprints and the circuit
breakers for the outbound integrations.
"""
import importlib
import os

from flask import Flask


def create_app():
    """Create and configure the Flask application."""
    from leadengine.logging_config import configure_logging

    app = Flask(__name__)

    configure_logging(app)

    app.secret_key = os.getenv('SECRET_KEY', 'dev-secret-change-me')

    from leadengine.routes.automations import bp as automations_bp
    from leadengine.routes.health import bp as health_bp

    app.register_blueprint(automations_bp)
    app.register_blueprint(health_bp)

    from leadengine.extensions import redis_client
    from leadengine.services.circuit_breaker import init_breakers
    init_breakers(redis_client)

    # Register models on Base.metadata. Schema is managed by Alembic.
    importlib.import_module('leadengine.models.lead')
    importlib.import_module('leadengine.models.lead_event')
    importlib.import_module('leadengine.models.automation')
    importlib.import_module('leadengine.models.site_survey')

    return app
