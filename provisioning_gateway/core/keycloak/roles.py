"""Keycloak role management operations."""
from __future__ import annotations
import logging
from typing import List

from provisioning_gateway.core.models import RoleDescriptor

from .client import KeycloakClient
from .exceptions import DuplicateRoleError, ProtocolError, RoleNotFoundError
from .request_builder import ROLES, USER_REALM_ROLE_MAPPINGS, RequestBuilder

logger = logging.getLogger(__name__)


class RoleService:
    """Service for looking up and assigning realm-level roles."""

    def __init__(self, client: KeycloakClient, builder: RequestBuilder):
        self.client = client
        self.builder = builder

    def list_roles(self, token: str) -> List[RoleDescriptor]:
        """Return every realm role.

        Raises:
            ProtocolError: If the body is not a JSON array of {id, name}
        """
        resp = self.client.execute(self.builder.get(token, ROLES), operation="list_roles")
        try:
            body = resp.json()
        except ValueError as exc:
            raise ProtocolError("Role list response is not valid JSON", operation="list_roles") from exc
        if not isinstance(body, list):
            raise ProtocolError("Role list response is not a JSON array", operation="list_roles")
        roles = []
        for item in body:
            if not isinstance(item, dict) or not item.get("id") or not item.get("name"):
                raise ProtocolError(f"Malformed role in list response: {item!r}", operation="list_roles")
            roles.append(RoleDescriptor(id=item["id"], name=item["name"]))
        return roles

    def find_role(self, token: str, role_name: str) -> RoleDescriptor:
        """Resolve a role by exact name.

        Raises:
            RoleNotFoundError: No role has this name
            DuplicateRoleError: More than one role has this name
            ProvisioningError: Classified failure or malformed body of the role list
        """
        matches = [role for role in self.list_roles(token) if role.name == role_name]
        if not matches:
            logger.warning("[roles] Role '%s' not found", role_name)
            raise RoleNotFoundError(f"role {role_name}", operation="find_role", target_id=role_name)
        if len(matches) > 1:
            raise DuplicateRoleError(
                f"Identity provider returned {len(matches)} roles named '{role_name}'",
                operation="find_role",
                target_id=role_name,
            )
        logger.debug("[roles] Role '%s' resolved to id %s", role_name, matches[0].id)
        return matches[0]

    def assign_realm_role(self, token: str, user_id: str, role: RoleDescriptor) -> None:
        """POST a realm role mapping for the user."""
        self.client.execute(
            self.builder.post(token, USER_REALM_ROLE_MAPPINGS, [role.to_mapping()], user_id=user_id),
            operation="assign_role",
            target_id=user_id,
        )
        logger.info("[roles] Assigned role '%s' to user %s", role.name, user_id)
