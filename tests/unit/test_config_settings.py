import pytest

from provisioning_gateway.config import settings

GATEWAY_VARS = [
    "DEMO_MODE",
    "KEYCLOAK_URL",
    "KEYCLOAK_REALM",
    "KEYCLOAK_TOKEN_REALM",
    "KEYCLOAK_ADMIN_CLIENT_ID",
    "KEYCLOAK_ADMIN_CLIENT_SECRET",
    "KEYCLOAK_ADMIN_CLIENT_SECRET_DEMO",
    "KEYCLOAK_ISSUER",
    "KEYCLOAK_AUDIENCE",
    "ORGANIZER_SERVICE_URL",
    "ORGANIZER_PATH",
    "ORGANIZER_ROLE",
    "ORGANIZER_FAILURE_POLICY",
    "ADMIN_ROLE",
    "ROLES_CLIENT_ID",
    "HTTP_CONNECT_TIMEOUT",
    "HTTP_READ_TIMEOUT",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in GATEWAY_VARS:
        monkeypatch.delenv(name, raising=False)

    # Point /run/secrets at an empty temp directory
    real_path = settings.Path

    def fake_path(target):
        if str(target) == "/run/secrets":
            return tmp_path
        return real_path(target)

    monkeypatch.setattr(settings, "Path", fake_path)
    return tmp_path


def set_production_env(monkeypatch):
    monkeypatch.setenv("KEYCLOAK_URL", "https://iam.example.com/")
    monkeypatch.setenv("KEYCLOAK_REALM", "events")
    monkeypatch.setenv("KEYCLOAK_ADMIN_CLIENT_ID", "user-service")
    monkeypatch.setenv("KEYCLOAK_ADMIN_CLIENT_SECRET", "env-secret")


def test_load_settings_production(monkeypatch):
    set_production_env(monkeypatch)
    monkeypatch.setenv("ORGANIZER_SERVICE_URL", "http://organizer:8080/")
    monkeypatch.setenv("ORGANIZER_PATH", "api/organizers")

    cfg = settings.load_settings()

    assert cfg.demo_mode is False
    assert cfg.keycloak_url == "https://iam.example.com"
    assert cfg.realm == "events"
    assert cfg.token_realm == "events"
    assert cfg.client_secret == "env-secret"
    assert cfg.issuer == "https://iam.example.com/realms/events"
    assert cfg.organizer_service_url == "http://organizer:8080"
    assert cfg.organizer_path == "/api/organizers"
    assert cfg.organizer_enabled is True
    assert cfg.request_timeout == (3.05, 5.0)


def test_production_requires_keycloak_url(monkeypatch):
    monkeypatch.setenv("KEYCLOAK_ADMIN_CLIENT_SECRET", "env-secret")
    with pytest.raises(RuntimeError, match="KEYCLOAK_URL"):
        settings.load_settings()


def test_production_requires_client_secret(monkeypatch):
    set_production_env(monkeypatch)
    monkeypatch.delenv("KEYCLOAK_ADMIN_CLIENT_SECRET")
    with pytest.raises(RuntimeError, match="KEYCLOAK_ADMIN_CLIENT_SECRET"):
        settings.load_settings()


def test_client_secret_prefers_run_secrets(monkeypatch, clean_env):
    set_production_env(monkeypatch)
    (clean_env / "keycloak_admin_client_secret").write_text("file-secret\n")

    assert settings.load_settings().client_secret == "file-secret"


def test_demo_mode_defaults(monkeypatch):
    monkeypatch.setenv("DEMO_MODE", "true")

    cfg = settings.load_settings()

    assert cfg.demo_mode is True
    assert cfg.keycloak_url == "http://127.0.0.1:8080"
    assert cfg.client_id == "user-service"
    assert cfg.client_secret == "demo-admin-secret"
    assert cfg.organizer_enabled is False
    assert cfg.organizer_role == "ORGANIZADOR"
    assert cfg.organizer_failure_policy == "log"


def test_token_realm_and_timeouts_override(monkeypatch):
    set_production_env(monkeypatch)
    monkeypatch.setenv("KEYCLOAK_TOKEN_REALM", "master")
    monkeypatch.setenv("HTTP_CONNECT_TIMEOUT", "1.5")
    monkeypatch.setenv("HTTP_READ_TIMEOUT", "10")

    cfg = settings.load_settings()

    assert cfg.token_realm == "master"
    assert cfg.request_timeout == (1.5, 10.0)


@pytest.mark.parametrize("value", ["fast", "0", "-2"])
def test_invalid_timeout_is_rejected(monkeypatch, value):
    set_production_env(monkeypatch)
    monkeypatch.setenv("HTTP_READ_TIMEOUT", value)
    with pytest.raises(RuntimeError, match="HTTP_READ_TIMEOUT"):
        settings.load_settings()


def test_invalid_failure_policy_is_rejected(monkeypatch):
    set_production_env(monkeypatch)
    monkeypatch.setenv("ORGANIZER_FAILURE_POLICY", "ignore")
    with pytest.raises(RuntimeError, match="ORGANIZER_FAILURE_POLICY"):
        settings.load_settings()


def test_admin_role_is_upper_cased(monkeypatch):
    set_production_env(monkeypatch)
    monkeypatch.setenv("ADMIN_ROLE", "realm-admin")
    assert settings.load_settings().admin_role == "REALM-ADMIN"
