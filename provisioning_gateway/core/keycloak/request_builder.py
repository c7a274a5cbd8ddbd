"""Build authenticated request descriptors for the Keycloak Admin API."""
from __future__ import annotations
import string
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

USERS = "/admin/realms/{realm}/users"
USERS_COUNT = "/admin/realms/{realm}/users/count"
USER = "/admin/realms/{realm}/users/{user_id}"
USER_RESET_PASSWORD = "/admin/realms/{realm}/users/{user_id}/reset-password"
USER_REALM_ROLE_MAPPINGS = "/admin/realms/{realm}/users/{user_id}/role-mappings/realm"
ROLES = "/admin/realms/{realm}/roles"
TOKEN = "/realms/{realm}/protocol/openid-connect/token"

_formatter = string.Formatter()


@dataclass(frozen=True)
class RequestDescriptor:
    """Everything needed to send one HTTP request; carries no connection state."""
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    json: Any = None
    data: Optional[Dict[str, str]] = None
    params: Optional[Dict[str, Any]] = None


def expand_template(template: str, variables: Mapping[str, Any]) -> str:
    """Substitute ``{name}`` placeholders with URL-quoted values.

    Raises:
        ValueError: If a placeholder has no value
    """
    values = {}
    for _, name, _, _ in _formatter.parse(template):
        if name is None:
            continue
        if name not in variables or variables[name] is None or variables[name] == "":
            raise ValueError(f"Missing value for URI variable '{name}' in {template}")
        values[name] = quote(str(variables[name]), safe="")
    return template.format(**values)


class RequestBuilder:
    """Pure builder of Keycloak Admin API requests.

    The configured realm is merged into every template and always wins over a
    caller-supplied ``realm`` variable, so no request can leave its tenant.

    Usage:
        builder = RequestBuilder("http://keycloak:8080", "demo")
        req = builder.get(token, USER, user_id="123")
    """

    def __init__(self, base_url: str, realm: str):
        self.base_url = base_url.rstrip("/")
        self.realm = realm

    def build_uri(self, template: str, path_vars: Optional[Mapping[str, Any]] = None) -> str:
        variables = dict(path_vars or {})
        variables["realm"] = self.realm
        return f"{self.base_url}{expand_template(template, variables)}"

    def build(
        self,
        method: str,
        token: str,
        template: str,
        body: Any = None,
        path_vars: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> RequestDescriptor:
        """Build a descriptor with bearer auth and an optional JSON body.

        Args:
            method: HTTP method
            token: Admin access token
            template: URI template (e.g. USER)
            body: JSON-serialisable payload
            path_vars: Template variables other than realm
            params: Query string parameters

        Returns:
            RequestDescriptor
        """
        headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
        if body is not None:
            headers["Content-Type"] = "application/json"
        return RequestDescriptor(
            method=method.upper(),
            url=self.build_uri(template, path_vars),
            headers=headers,
            json=body,
            params=dict(params) if params else None,
        )

    def get(self, token: str, template: str, params: Optional[Mapping[str, Any]] = None, **path_vars) -> RequestDescriptor:
        return self.build("GET", token, template, path_vars=path_vars, params=params)

    def post(self, token: str, template: str, body: Any, **path_vars) -> RequestDescriptor:
        return self.build("POST", token, template, body=body, path_vars=path_vars)

    def put(self, token: str, template: str, body: Any, **path_vars) -> RequestDescriptor:
        return self.build("PUT", token, template, body=body, path_vars=path_vars)

    def delete(self, token: str, template: str, **path_vars) -> RequestDescriptor:
        return self.build("DELETE", token, template, path_vars=path_vars)

    def token_request(self, token_realm: str, client_id: str, client_secret: str) -> RequestDescriptor:
        """Form-encoded client-credentials request (no bearer header)."""
        url = f"{self.base_url}{expand_template(TOKEN, {'realm': token_realm})}"
        return RequestDescriptor(
            method="POST",
            url=url,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            data={
                "grant_type": "client_credentials",
                "client_id": client_id,
                "client_secret": client_secret,
            },
        )
