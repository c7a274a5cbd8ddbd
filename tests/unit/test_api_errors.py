import pytest
from flask import Flask, abort

from provisioning_gateway.api.errors import error_body, register_error_handlers, status_for
from provisioning_gateway.core.keycloak.exceptions import (
    DependencyUnavailableError,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
    ProtocolError,
    ProvisioningError,
    RoleAssignmentError,
    UnauthenticatedError,
    UpstreamUnavailableError,
)


@pytest.mark.parametrize(
    "error, status",
    [
        (NotFoundError("missing"), 404),
        (ForbiddenError("no"), 403),
        (UnauthenticatedError("who"), 401),
        (InvalidRequestError("bad"), 400),
        (UpstreamUnavailableError("down"), 502),
        (ProtocolError("weird"), 502),
        (RoleAssignmentError("half done", user_id="u1", role="role123"), 500),
        (DependencyUnavailableError("later"), 503),
        (ProvisioningError("other"), 500),
    ],
)
def test_status_for(error, status):
    assert status_for(error) == status


def test_role_assignment_body_includes_user_and_cause():
    cause = ForbiddenError("denied", status_code=403)
    body = error_body(RoleAssignmentError("half done", user_id="u1", role="role123", cause=cause))
    assert body == {
        "error": "RoleAssignmentFailure",
        "message": "half done",
        "operation": "assign_role",
        "targetId": "u1",
        "userId": "u1",
        "role": "role123",
        "cause": "Forbidden",
    }


def test_user_id_is_reported_for_partial_failures_of_any_kind():
    error = NotFoundError("role auditor", operation="find_role", target_id="auditor", user_id="abc-123")
    body = error_body(error)
    assert body["error"] == "NotFound"
    assert body["userId"] == "abc-123"
    assert "role" not in body
    assert status_for(error) == 404


@pytest.fixture()
def client():
    app = Flask(__name__)
    app.config["TESTING"] = True
    register_error_handlers(app)

    @app.route("/missing")
    def missing():
        raise NotFoundError("Resource 'u1' not found", operation="find_user_by_id", target_id="u1", status_code=404)

    @app.route("/organizer-down")
    def organizer_down():
        raise DependencyUnavailableError("try again later", operation="register_organizer")

    @app.route("/bad")
    def bad():
        abort(400, "invalid payload")

    @app.route("/crash")
    def crash():
        raise RuntimeError("boom")

    with app.test_client() as client:
        yield client


def test_provisioning_error_is_rendered_as_json(client):
    response = client.get("/missing")
    assert response.status_code == 404
    assert response.get_json() == {
        "error": "NotFound",
        "message": "Resource 'u1' not found",
        "operation": "find_user_by_id",
        "targetId": "u1",
    }


def test_dependency_unavailable_is_503(client):
    response = client.get("/organizer-down")
    assert response.status_code == 503
    assert response.get_json()["error"] == "DependencyUnavailable"


def test_bad_request(client):
    response = client.get("/bad")
    assert response.status_code == 400
    assert response.get_json()["message"] == "invalid payload"


def test_unknown_route_is_json_404(client):
    response = client.get("/nowhere")
    assert response.status_code == 404
    assert response.get_json()["error"] == "Not Found"


def test_method_not_allowed(client):
    response = client.post("/missing")
    assert response.status_code == 405


def test_unexpected_exception_is_500_without_details(client):
    response = client.get("/crash")
    assert response.status_code == 500
    assert "boom" not in response.get_data(as_text=True)
