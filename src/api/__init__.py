"""
PatentVault API Package.

Builds the Flask application and registers the blueprints:

- ipfs: Document and metadata storage (/api/ipfs/*)
- zkp: Commitments, Merkle trees and proofs (/api/zkp/*)
- patents: Patent registry (/api/patent/*, /api/patents)
- monitoring: Service info, health probes and metrics
"""

import logging

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from config import Config
from exceptions import PatentVaultError
from monitoring import configure_logging, setup_request_logging

from api.ipfs import ipfs_bp
from api.monitoring import monitoring_bp
from api.patents import patents_bp
from api.state import EXTENSION_KEY, Services, get_services
from api.zkp import zkp_bp

logger = logging.getLogger(__name__)

# List of all blueprints for registration
ALL_BLUEPRINTS = [
    ipfs_bp,
    zkp_bp,
    patents_bp,
    monitoring_bp,
]


def register_blueprints(app: Flask) -> None:
    """Register all blueprints with the Flask app."""
    for blueprint in ALL_BLUEPRINTS:
        app.register_blueprint(blueprint)


def register_error_handlers(app: Flask) -> None:
    """Convert every failure into a JSON ``{"error": ...}`` body."""

    @app.errorhandler(PatentVaultError)
    def handle_domain_error(error: PatentVaultError):
        if error.status_code >= 500:
            logger.error("%s: %s", type(error).__name__, error, extra={"error_context": error.to_dict()})
        else:
            logger.info("Request rejected: %s", error, extra={"error_context": error.to_dict()})
        return jsonify(error.to_response()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        if error.code == 404:
            return jsonify({"error": "Endpoint not found"}), 404
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        logger.exception("Unhandled error: %s", error)
        return jsonify({"error": str(error) or "Internal server error"}), 500


def create_app(config: Config | None = None, services: Services | None = None) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config: Runtime configuration; read from the environment when omitted
        services: Pre-built services (tests inject a memory-backed set)

    Returns:
        Configured Flask app
    """
    if config is None:
        config = services.config if services is not None else Config.from_env()
    services = services or Services.from_config(config)

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = config.max_content_length
    app.json.sort_keys = False
    app.extensions[EXTENSION_KEY] = services

    CORS(app, origins=[config.frontend_url], supports_credentials=True)

    setup_request_logging(app)
    register_error_handlers(app)
    register_blueprints(app)

    return app


def run_server(config: Config | None = None) -> None:
    """Run the Flask development server."""
    config = config or Config.from_env()
    configure_logging(level=config.log_level, json_output=config.json_logging)

    app = create_app(config)
    services = get_services_for(app)

    print(f"\n{'='*60}")
    print("PatentVault API Server")
    print(f"{'='*60}")
    print(f"Listening on: http://{config.host}:{config.port}")
    print(f"Storage: {services.backend.__class__.__name__} ({config.storage_backend})")
    print(f"Frontend origin: {config.frontend_url}")
    print(f"API key required: {config.require_auth}")
    print(f"{'='*60}\n")

    app.run(host=config.host, port=config.port, debug=config.debug)


def get_services_for(app: Flask) -> Services:
    """Services attached to ``app``, usable outside a request."""
    return app.extensions[EXTENSION_KEY]


__all__ = [
    "ALL_BLUEPRINTS",
    "Services",
    "create_app",
    "get_services",
    "get_services_for",
    "register_blueprints",
    "run_server",
]
