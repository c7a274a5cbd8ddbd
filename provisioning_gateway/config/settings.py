"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

ORGANIZER_FAILURE_POLICIES = ("log", "raise")


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    # Priority 1: Read from /run/secrets
    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                logger.info("[settings] Loaded %s from /run/secrets", secret_name)
                return secret_value
        except OSError as exc:
            logger.warning("[settings] Failed to read /run/secrets/%s: %s", secret_name, exc)

    # Priority 2: Fallback to environment variable
    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


@dataclass(frozen=True)
class GatewayConfig:
    """Gateway configuration container.

    Built once at startup by :func:`load_settings` and passed explicitly to the
    token provider, request builder and orchestrator.
    """
    # Mode
    demo_mode: bool

    # Keycloak admin API
    keycloak_url: str
    realm: str
    token_realm: str
    client_id: str
    client_secret: str

    # Inbound token validation
    issuer: str = ""
    audience: str = ""
    roles_client_id: str = "user-service"
    admin_role: str = "ADMIN"

    # Organizer (secondary) service
    organizer_service_url: str = ""
    organizer_path: str = "/organizers"
    organizer_role: str = "ORGANIZADOR"
    organizer_failure_policy: str = "log"

    # Outbound HTTP
    connect_timeout: float = 3.05
    read_timeout: float = 5.0

    log_level: str = "INFO"

    @property
    def request_timeout(self) -> tuple[float, float]:
        """(connect, read) timeout tuple accepted by requests."""
        return (self.connect_timeout, self.read_timeout)

    @property
    def organizer_enabled(self) -> bool:
        return bool(self.organizer_service_url)


def _get_or_default(var_name: str, demo_default: str | None = None, demo_mode: bool = False) -> str:
    """Get environment variable, falling back to a demo default in demo mode."""
    value = os.environ.get(var_name)
    if value:
        return value

    if demo_mode and demo_default is not None:
        logger.info("[demo-mode] Using default for %s", var_name)
        return demo_default

    raise RuntimeError(f"Environment variable {var_name} is required in production mode.")


def _get_float(var_name: str, default: float) -> float:
    raw = os.environ.get(var_name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"{var_name} must be a number, got {raw!r}")
    if value <= 0:
        raise RuntimeError(f"{var_name} must be positive, got {raw!r}")
    return value


def load_settings() -> GatewayConfig:
    """Load gateway settings from environment and /run/secrets."""
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"

    # Keycloak admin API
    keycloak_url = _get_or_default(
        "KEYCLOAK_URL",
        demo_default="http://127.0.0.1:8080",
        demo_mode=demo_mode,
    ).rstrip("/")
    realm = os.environ.get("KEYCLOAK_REALM", "demo")
    token_realm = os.environ.get("KEYCLOAK_TOKEN_REALM", realm)
    client_id = _get_or_default(
        "KEYCLOAK_ADMIN_CLIENT_ID",
        demo_default="user-service",
        demo_mode=demo_mode,
    )

    client_secret = _load_secret_from_file(
        "keycloak_admin_client_secret",
        "KEYCLOAK_ADMIN_CLIENT_SECRET",
    )
    if not client_secret:
        if not demo_mode:
            raise RuntimeError(
                "KEYCLOAK_ADMIN_CLIENT_SECRET not found in /run/secrets or environment"
            )
        client_secret = os.environ.get("KEYCLOAK_ADMIN_CLIENT_SECRET_DEMO") or "demo-admin-secret"
        logger.info("[demo-mode] Using demo KEYCLOAK_ADMIN_CLIENT_SECRET")

    # Inbound token validation
    issuer = os.environ.get("KEYCLOAK_ISSUER", f"{keycloak_url}/realms/{realm}").rstrip("/")
    audience = os.environ.get("KEYCLOAK_AUDIENCE", "")
    roles_client_id = os.environ.get("ROLES_CLIENT_ID", "user-service")
    admin_role = os.environ.get("ADMIN_ROLE", "ADMIN").strip().upper()

    # Organizer service
    organizer_service_url = os.environ.get("ORGANIZER_SERVICE_URL", "").rstrip("/")
    organizer_path = os.environ.get("ORGANIZER_PATH", "/organizers")
    if not organizer_path.startswith("/"):
        organizer_path = f"/{organizer_path}"
    organizer_role = os.environ.get("ORGANIZER_ROLE", "ORGANIZADOR").strip()
    organizer_failure_policy = os.environ.get("ORGANIZER_FAILURE_POLICY", "log").strip().lower()
    if organizer_failure_policy not in ORGANIZER_FAILURE_POLICIES:
        raise RuntimeError(
            f"ORGANIZER_FAILURE_POLICY must be one of {', '.join(ORGANIZER_FAILURE_POLICIES)}, "
            f"got {organizer_failure_policy!r}"
        )
    if not organizer_service_url:
        logger.warning("[settings] ORGANIZER_SERVICE_URL not set; organizer registration disabled")

    connect_timeout = _get_float("HTTP_CONNECT_TIMEOUT", 3.05)
    read_timeout = _get_float("HTTP_READ_TIMEOUT", 5.0)

    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    logger.info("[settings] Mode=%s; realm=%s; client_id=%s", mode_label, realm, client_id)
    if demo_mode:
        logger.warning("[settings] Demo credentials in use. Do not deploy with these defaults.")

    return GatewayConfig(
        demo_mode=demo_mode,
        keycloak_url=keycloak_url,
        realm=realm,
        token_realm=token_realm,
        client_id=client_id,
        client_secret=client_secret,
        issuer=issuer,
        audience=audience,
        roles_client_id=roles_client_id,
        admin_role=admin_role,
        organizer_service_url=organizer_service_url,
        organizer_path=organizer_path,
        organizer_role=organizer_role,
        organizer_failure_policy=organizer_failure_policy,
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        log_level=log_level,
    )
