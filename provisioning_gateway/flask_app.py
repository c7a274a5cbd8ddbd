"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the gateway with its blueprints, error handlers and orchestrator.
"""
from __future__ import annotations
import logging
from typing import Optional

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from provisioning_gateway.config import GatewayConfig, load_settings
from provisioning_gateway.core.provisioning_service import ProvisioningService


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(
    cfg: Optional[GatewayConfig] = None,
    service: Optional[ProvisioningService] = None,
) -> Flask:
    """Create and configure the Flask application.

    Args:
        cfg: Configuration; loaded from the environment when omitted
        service: Orchestrator; built from cfg when omitted
    """
    cfg = cfg or load_settings()
    _configure_logging(cfg.log_level)

    app = Flask(__name__)
    app.config["GATEWAY_CONFIG"] = cfg

    # Trust X-Forwarded-* headers from the reverse proxy
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore

    from provisioning_gateway.api import errors, health, users

    app.extensions[users.SERVICE_EXTENSION_KEY] = service or ProvisioningService.from_config(cfg)

    app.register_blueprint(health.bp)
    app.register_blueprint(users.bp, url_prefix="/users")

    errors.register_error_handlers(app)

    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    app.logger.info(f"[flask_app] Mode={mode_label}; realm={cfg.realm}; keycloak={cfg.keycloak_url}")
    if not cfg.organizer_enabled:
        app.logger.warning("[flask_app] Organizer registration disabled (ORGANIZER_SERVICE_URL unset)")
    if cfg.demo_mode:
        app.logger.warning("[flask_app] Demo mode active - do not deploy with demo credentials")

    return app


def _configure_logging(level: str) -> None:
    """Install a basic root handler once; gunicorn may already have one."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    root.setLevel(getattr(logging, level, logging.INFO))


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, debug=True)
