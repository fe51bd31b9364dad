from __future__ import annotations

import logging

from flask import Flask, request
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config
from .errors import app_error_response, register_error_handlers
from models import storage  # DBStorage singleton (scoped_session)
from services.auth_pipeline import extract_token
from services.container import EXTENSION_KEY, build_services
from services.maintenance import evaluate_gate

logger = logging.getLogger(__name__)

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "Library Auth API",
        "version": "1.0.0",
        "description": "Authentication, session and account service for the library platform.",
    },
    "basePath": "/",  # blueprints are mounted under /api/v1
    "schemes": ["http"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(config_name: str | None = None, notifier=None, audit=None, clock=None, dispatch=None) -> Flask:
    """
    Application factory: creates and configures the Flask app.

    notifier, audit, clock and dispatch replace the default collaborators
    (log-only notifier and audit, wall clock, daemon-thread broadcast).
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    configure_logging(app.config.get("LOG_LEVEL"))

    # Cross-Origin Resource Sharing; credentials on so the token cookies travel
    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    storage.reload(app.config["DATABASE_URL"])
    app.extensions[EXTENSION_KEY] = build_services(
        app.config,
        notifier=notifier,
        audit=audit,
        clock=clock,
        dispatch=dispatch,
        storage=storage,
    )

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    @app.before_request
    def maintenance_gate():
        services = app.extensions[EXTENSION_KEY]
        if request.method == "OPTIONS" or not services.maintenance.is_maintenance_mode():
            return None
        principal = services.pipeline.try_authenticate(extract_token(request.headers, request.cookies))
        rejection = evaluate_gate(request.path, principal, services.maintenance.state)
        if rejection is not None:
            logger.info("Maintenance gate rejected %s %s", request.method, request.path)
            return app_error_response(rejection)
        return None

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .account import bp as account_bp
    from .users import bp as users_bp
    from .maintenance import bp as maintenance_bp
    from .internal import bp as internal_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(account_bp, url_prefix="/api/v1/accounts")
    app.register_blueprint(users_bp, url_prefix="/api/v1")
    app.register_blueprint(maintenance_bp, url_prefix="/api/v1")
    app.register_blueprint(internal_bp, url_prefix="/api/v1/internal")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # scoped_session.remove(), preventing connection leaks
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Library Auth API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app
