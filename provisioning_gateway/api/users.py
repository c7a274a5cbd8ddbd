"""User administration endpoints.

Thin HTTP layer: validates payloads, maps them to request objects and
delegates to the ProvisioningService stored on the app. Error responses come
from the handlers in api/errors.py.
"""

from __future__ import annotations
import logging
from functools import wraps

from flask import Blueprint, current_app, g, jsonify, request

from provisioning_gateway.api.decorators import require_bearer_token
from provisioning_gateway.api.health import SERVICE_EXTENSION_KEY
from provisioning_gateway.core.keycloak.exceptions import InvalidRequestError
from provisioning_gateway.core.models import UserCreateRequest, UserUpdateRequest
from provisioning_gateway.core.provisioning_service import ProvisioningService

bp = Blueprint("users", __name__)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 200


def _service() -> ProvisioningService:
    return current_app.extensions[SERVICE_EXTENSION_KEY]


def _admin_roles() -> list[str]:
    return [current_app.config["GATEWAY_CONFIG"].admin_role]


def require_admin(fn):
    """Bearer token with the configured admin role (resolved per request)."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        return require_bearer_token(roles=_admin_roles())(fn)(*args, **kwargs)

    return wrapper


def _operator() -> str:
    claims = g.get("token_claims") or {}
    return claims.get("preferred_username") or claims.get("azp") or "unknown"


def _json_body(operation: str) -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise InvalidRequestError("Request body must be a JSON object", operation=operation)
    return payload


def _int_arg(name: str, default: int, operation: str) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise InvalidRequestError(f"{name} must be an integer", operation=operation) from exc


@bp.route("/admin/create", methods=["POST"])
@require_admin
def create_user():
    cfg = current_app.config["GATEWAY_CONFIG"]
    user_request = UserCreateRequest.from_payload(_json_body("create_user"), cfg.organizer_role)
    user_id = _service().create_user(user_request, caller_token=g.get("bearer_token"))
    logger.info("User %s created by %s", user_id, _operator())
    return jsonify({"message": "User created", "id": user_id}), 201


@bp.route("/admin/<user_id>", methods=["PUT"])
@require_admin
def update_user(user_id: str):
    user_request = UserUpdateRequest.from_payload(_json_body("update_user"))
    _service().update_user(user_id, user_request)
    return jsonify({"message": "User updated"}), 200


@bp.route("/admin/<user_id>", methods=["DELETE"])
@require_admin
def delete_user(user_id: str):
    _service().delete_user(user_id)
    logger.info("User %s deleted by %s", user_id, _operator())
    return jsonify({"message": "User deleted"}), 200


@bp.route("/admin/<user_id>", methods=["GET"])
@require_admin
def get_user(user_id: str):
    return jsonify(_service().find_user_by_id(user_id).to_dict()), 200


@bp.route("/admin", methods=["GET"])
@require_admin
def list_users():
    search = request.args.get("search", "")
    first = _int_arg("first", 0, "find_all_users")
    max_results = _int_arg("max", DEFAULT_PAGE_SIZE, "find_all_users")
    if max_results > MAX_PAGE_SIZE:
        raise InvalidRequestError(f"max must not exceed {MAX_PAGE_SIZE}", operation="find_all_users")
    page = _service().find_all_users(search=search, first=first, max_results=max_results)
    return jsonify(page.to_dict()), 200
