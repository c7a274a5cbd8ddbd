from provisioning_gateway.api.users import SERVICE_EXTENSION_KEY
from provisioning_gateway.core.provisioning_service import ProvisioningService
from provisioning_gateway.flask_app import create_app
from tests.conftest import make_config


def test_create_app_wires_config_and_service(gateway_config, service):
    app = create_app(gateway_config, service)

    assert app.config["GATEWAY_CONFIG"] is gateway_config
    assert app.extensions[SERVICE_EXTENSION_KEY] is service
    rules = {rule.rule for rule in app.url_map.iter_rules()}
    assert {"/health", "/ready", "/users/admin/create", "/users/admin/<user_id>", "/users/admin"} <= rules


def test_create_app_builds_service_from_config():
    app = create_app(make_config(organizer_service_url=""))

    service = app.extensions[SERVICE_EXTENSION_KEY]
    assert isinstance(service, ProvisioningService)
    assert service.organizer_client is None


def test_create_app_loads_settings_from_environment(monkeypatch, tmp_path):
    from provisioning_gateway.config import settings

    real_path = settings.Path
    monkeypatch.setattr(settings, "Path", lambda target: tmp_path if str(target) == "/run/secrets" else real_path(target))
    for name in ("KEYCLOAK_URL", "KEYCLOAK_ADMIN_CLIENT_SECRET", "ORGANIZER_SERVICE_URL", "KEYCLOAK_REALM"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DEMO_MODE", "true")

    app = create_app()

    assert app.config["GATEWAY_CONFIG"].demo_mode is True
    assert app.test_client().get("/health").status_code == 200


def test_ready_after_create_app(gateway_config, service):
    app = create_app(gateway_config, service)

    response = app.test_client().get("/ready")

    assert response.status_code == 200
    assert response.get_json()["organizerRegistration"] == "enabled"
