"""Liveness and readiness endpoints (no authentication)."""
from flask import Blueprint, current_app, jsonify

bp = Blueprint("health", __name__)

SERVICE_EXTENSION_KEY = "provisioning_gateway.service"


@bp.route("/health")
def health_check():
    return ("ok", 200, {"Content-Type": "text/plain"})


@bp.route("/ready")
def readiness_check():
    """Ready once configuration and the orchestrator are wired.

    Remote systems are not probed; their failures surface per request.
    """
    cfg = current_app.config.get("GATEWAY_CONFIG")
    if cfg is None or SERVICE_EXTENSION_KEY not in current_app.extensions:
        return jsonify({"status": "starting"}), 503
    return jsonify({
        "status": "ready",
        "realm": cfg.realm,
        "organizerRegistration": "enabled" if cfg.organizer_enabled else "disabled",
    }), 200
