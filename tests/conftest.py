"""Pytest shared fixtures: stub HTTP sessions and a wired orchestrator."""
import json
import pathlib
import sys
import threading
import time
from types import SimpleNamespace
from typing import Optional
from urllib.parse import urlparse

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import jwt
import pytest
import requests
from cryptography.hazmat.primitives.asymmetric import rsa

from provisioning_gateway.config import GatewayConfig
from provisioning_gateway.core.provisioning_service import ProvisioningService

KEYCLOAK_URL = "http://keycloak.test"
ORGANIZER_URL = "http://organizer.test"
ISSUER = f"{KEYCLOAK_URL}/realms/demo"

TOKEN_PATH = "/realms/master/protocol/openid-connect/token"
USERS_PATH = "/admin/realms/demo/users"
ROLES_PATH = "/admin/realms/demo/roles"


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_real_sessions(monkeypatch, request):
    """Fail loudly if a unit test reaches a real requests.Session."""
    if request.node.get_closest_marker("integration"):
        return

    def _refuse(self, method, url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")

    monkeypatch.setattr(requests.Session, "request", _refuse)


# ─────────────────────────────────────────────────────────────────────────────
# Stub HTTP
# ─────────────────────────────────────────────────────────────────────────────
class StubResponse:
    def __init__(self, status_code: int = 200, payload=None, headers: Optional[dict] = None, text: Optional[str] = None):
        self.status_code = status_code
        self.headers = headers or {}
        if text is not None:
            self.text = text
        elif payload is not None:
            self.text = json.dumps(payload)
        else:
            self.text = ""

    def json(self):
        # json.JSONDecodeError is a ValueError, like requests' own
        return json.loads(self.text)


class StubSession:
    """Route-based fake of requests.Session that records every call.

    Routes are keyed by (method, path). A route holds a queue of outcomes;
    the last one repeats. An outcome is a StubResponse, an exception to raise,
    or a callable taking the recorded call and returning either.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []
        self._lock = threading.Lock()

    def add(self, method: str, path: str, *outcomes):
        self.routes.setdefault((method.upper(), path), []).extend(outcomes)
        return self

    def request(self, method, url, **kwargs):
        parsed = urlparse(url)
        call = SimpleNamespace(
            method=method.upper(),
            url=url,
            path=parsed.path,
            headers=kwargs.get("headers") or {},
            json=kwargs.get("json"),
            data=kwargs.get("data"),
            params=kwargs.get("params"),
            timeout=kwargs.get("timeout"),
            thread=threading.current_thread().name,
        )
        with self._lock:
            self.calls.append(call)
            queue = self.routes.get((call.method, call.path))
            if not queue:
                raise RuntimeError(f"Unexpected HTTP {call.method} in unit test: {url}")
            outcome = queue.pop(0) if len(queue) > 1 else queue[0]

        if callable(outcome) and not isinstance(outcome, BaseException):
            outcome = outcome(call)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)

    def close(self):
        pass

    def calls_to(self, method: str, path: str):
        return [c for c in self.calls if c.method == method.upper() and c.path == path]


def created(user_id: str) -> StubResponse:
    return StubResponse(201, headers={"Location": f"{KEYCLOAK_URL}{USERS_PATH}/{user_id}"})


def token_ok(token: str = "admin-token-0123456789") -> StubResponse:
    return StubResponse(200, {"access_token": token, "expires_in": 60, "token_type": "Bearer"})


def make_config(**overrides) -> GatewayConfig:
    base = dict(
        demo_mode=False,
        keycloak_url=KEYCLOAK_URL,
        realm="demo",
        token_realm="master",
        client_id="user-service",
        client_secret="s3cret",
        issuer=ISSUER,
        audience="",
        roles_client_id="user-service",
        admin_role="ADMIN",
        organizer_service_url=ORGANIZER_URL,
        organizer_path="/organizers",
        organizer_role="ORGANIZADOR",
        organizer_failure_policy="log",
    )
    base.update(overrides)
    return GatewayConfig(**base)


@pytest.fixture()
def gateway_config():
    return make_config()


@pytest.fixture()
def kc_session():
    """Keycloak stub with a working token endpoint."""
    session = StubSession()
    session.add("POST", TOKEN_PATH, token_ok())
    return session


@pytest.fixture()
def organizer_session():
    return StubSession()


@pytest.fixture()
def service(gateway_config, kc_session, organizer_session):
    return ProvisioningService.from_config(gateway_config, session=kc_session, organizer_session=organizer_session)


# ─────────────────────────────────────────────────────────────────────────────
# RSA Key Pair for JWT Testing
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(scope="session")
def rsa_key_pair():
    """Generate RSA key pair for JWT signing in tests."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return {"private_key": private_key, "public_key": private_key.public_key()}


def create_valid_jwt(
    rsa_key_pair: dict,
    issuer: str = ISSUER,
    username: str = "alice",
    client_roles: Optional[list[str]] = None,
    realm_roles: Optional[list[str]] = None,
    exp_offset: int = 3600,
    audience: Optional[str] = None,
) -> str:
    """Create an RS256-signed access token shaped like Keycloak's."""
    now = int(time.time())
    payload = {
        "iss": issuer,
        "sub": "user-123",
        "exp": now + exp_offset,
        "iat": now,
        "azp": "admin-ui",
        "preferred_username": username,
        "realm_access": {"roles": realm_roles or []},
    }
    if client_roles is not None:
        payload["resource_access"] = {"user-service": {"roles": client_roles}}
    if audience:
        payload["aud"] = audience
    return jwt.encode(payload, rsa_key_pair["private_key"], algorithm="RS256", headers={"kid": "test-key"})


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (requires running stack)"
    )
