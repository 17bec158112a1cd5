"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with its blueprints and the identity gateway.
"""
from __future__ import annotations
import logging
from typing import Optional

from flask import Flask

from idgateway.config import GatewayConfig, load_settings
from idgateway.core.gateway import IdentityGateway, build_gateway

logger = logging.getLogger(__name__)


def create_app(config: Optional[GatewayConfig] = None, gateway: Optional[IdentityGateway] = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        config: Settings (loaded from the environment when omitted)
        gateway: Pre-built gateway; when omitted the Keycloak admin session
            is opened here, once, for the lifetime of the app
    """
    if gateway is None:
        cfg = config or load_settings()
        gateway = build_gateway(cfg)
    cfg = gateway.config

    app = Flask(__name__)
    app.extensions["idgateway"] = gateway

    from idgateway.api import admin, auth, errors, health

    app.register_blueprint(auth.bp, url_prefix="/auth")
    app.register_blueprint(admin.bp, url_prefix="/admin")
    app.register_blueprint(health.bp)

    errors.register_error_handlers(app)

    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    logger.info("[flask_app] Mode=%s; realm=%s", mode_label, cfg.keycloak_realm)
    return app
