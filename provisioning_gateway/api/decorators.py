"""
Flask decorators for bearer-token authentication and role authorization.

Security:
- RSA-SHA256 signature verification via JWKS (RFC 7517)
- Expiration, issuer, audience validation (RFC 7519)
- JWKS caching for performance (1-hour refresh)

The raw bearer token is stored in ``g.bearer_token`` so route handlers can
pass it explicitly to the orchestrator for forwarding.
"""

import hashlib
import logging
from functools import wraps
from typing import Dict, List, Optional

import jwt
from jwt import PyJWKClient
from jwt.exceptions import PyJWKClientError, InvalidTokenError
from flask import current_app, g, jsonify, request

logger = logging.getLogger(__name__)

JWKS_EXTENSION_KEY = "provisioning_gateway.jwks_client"


class TokenValidationError(Exception):
    """Exception raised when JWT token validation fails."""
    pass


def token_fingerprint(token: str) -> str:
    """Truncated SHA-256 of a caller token, safe to log."""
    return hashlib.sha256(token.encode()).hexdigest()[:12]


def get_jwks_client() -> PyJWKClient:
    """
    Get the JWKS client cached on the current app.

    Returns:
        PyJWKClient: Configured client for the Keycloak realm
    """
    client = current_app.extensions.get(JWKS_EXTENSION_KEY)
    if client is None:
        cfg = current_app.config["GATEWAY_CONFIG"]
        jwks_url = f"{cfg.issuer}/protocol/openid-connect/certs"
        logger.info(f"Initializing JWKS client for: {jwks_url}")
        client = PyJWKClient(
            jwks_url,
            cache_keys=True,
            max_cached_keys=16,
            lifespan=3600,
            headers={"User-Agent": "provisioning-gateway/1.0"},
        )
        current_app.extensions[JWKS_EXTENSION_KEY] = client
    return client


def validate_jwt_token(token: str) -> Dict[str, object]:
    """
    Validate a JWT bearer token.

    Validations performed:
    1. Signature verification (RS256 via JWKS)
    2. Expiration (exp claim)
    3. Issuer (iss claim)
    4. Audience (aud claim, only if configured)

    Args:
        token: JWT token string (without "Bearer " prefix)

    Returns:
        dict: Validated token claims

    Raises:
        TokenValidationError: If any validation fails
    """
    cfg = current_app.config["GATEWAY_CONFIG"]
    try:
        signing_key = get_jwks_client().get_signing_key_from_jwt(token)
        options = {"require": ["exp", "iss"], "verify_aud": bool(cfg.audience)}
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            issuer=cfg.issuer,
            audience=cfg.audience or None,
            options=options,
        )
    except (InvalidTokenError, PyJWKClientError) as e:
        raise TokenValidationError(f"Invalid token: {e}") from e


def collect_roles(claims: dict, client_id: str) -> List[str]:
    """Collect upper-cased roles from the token.

    Client roles in ``resource_access[client_id]`` take precedence; realm
    roles in ``realm_access`` are used only when the client has none.
    """
    resource_access = claims.get("resource_access")
    if isinstance(resource_access, dict):
        client_access = resource_access.get(client_id)
        if isinstance(client_access, dict):
            roles = client_access.get("roles") or []
            if isinstance(roles, list) and roles:
                return [str(role).upper() for role in roles]

    realm_access = claims.get("realm_access")
    if isinstance(realm_access, dict):
        roles = realm_access.get("roles") or []
        if isinstance(roles, list):
            return [str(role).upper() for role in roles]
    return []


def _auth_error(status: int, error: str, message: str):
    return jsonify({"error": error, "message": message}), status


def require_bearer_token(roles: Optional[List[str]] = None):
    """
    Require a valid bearer token and, optionally, one of the given roles.

    Args:
        roles: Accepted roles (case-insensitive). Empty means any valid token.

    Returns:
        401 Unauthorized: Missing, invalid, or expired token
        403 Forbidden: Token lacks every accepted role

    Example:
        @bp.route("/admin/create", methods=["POST"])
        @require_bearer_token(roles=["ADMIN"])
        def create_user():
            ...
    """
    required = [role.upper() for role in (roles or [])]

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            auth_header = request.headers.get("Authorization", "")
            if not auth_header:
                logger.warning("Request missing Authorization header")
                return _auth_error(401, "Unauthorized", "Authorization header required. Use 'Authorization: Bearer <token>'")

            if not auth_header.startswith("Bearer "):
                logger.warning("Request with invalid Authorization format")
                return _auth_error(401, "Unauthorized", "Invalid Authorization header format. Expected 'Bearer <token>'")

            token = auth_header[7:].strip()
            if not token:
                return _auth_error(401, "Unauthorized", "Bearer token is empty")

            try:
                claims = validate_jwt_token(token)
            except TokenValidationError as e:
                logger.warning(f"JWT validation failed (token_hash={token_fingerprint(token)}): {e}")
                return _auth_error(401, "Unauthorized", str(e))

            cfg = current_app.config["GATEWAY_CONFIG"]
            token_roles = collect_roles(claims, cfg.roles_client_id)
            if required and not any(role in token_roles for role in required):
                logger.warning(
                    f"Request lacks required role. Required: {required}, "
                    f"token_hash={token_fingerprint(token)}"
                )
                return _auth_error(403, "Forbidden", f"Required role: {', '.join(required)}")

            g.bearer_token = token
            g.token_claims = claims
            g.roles = token_roles
            return fn(*args, **kwargs)

        return wrapper
    return decorator
