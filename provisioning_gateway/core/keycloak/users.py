"""Keycloak user management operations."""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import unquote, urlparse

from provisioning_gateway.core.models import RemoteUserRecord

from .client import KeycloakClient
from .exceptions import ProtocolError
from .request_builder import (
    USER,
    USER_RESET_PASSWORD,
    USERS,
    USERS_COUNT,
    RequestBuilder,
)

logger = logging.getLogger(__name__)


def extract_user_id(location: Optional[str]) -> str:
    """Return the trailing id segment of a ``.../users/{id}`` Location header.

    Raises:
        ProtocolError: If the header is absent or carries no id
    """
    if not location:
        raise ProtocolError("User created but Location header is missing", operation="create_user")
    path = urlparse(location).path.rstrip("/")
    head, _, user_id = path.rpartition("/")
    if not user_id or not head.endswith("/users"):
        raise ProtocolError(f"Cannot extract user id from Location '{location}'", operation="create_user")
    return unquote(user_id)


class UserService:
    """Service for managing Keycloak users.

    Every method takes the admin token explicitly; the service holds no
    per-call state.
    """

    def __init__(self, client: KeycloakClient, builder: RequestBuilder):
        """Initialize user service.

        Args:
            client: Shared Keycloak HTTP client
            builder: Realm-bound request builder
        """
        self.client = client
        self.builder = builder

    def create_user(self, token: str, representation: Dict[str, Any], username: str) -> str:
        """Create a user and return the id Keycloak generated for it.

        Args:
            token: Admin access token
            representation: Keycloak UserRepresentation
            username: Username, for error context only

        Returns:
            New user id taken from the Location header

        Raises:
            ProtocolError: If the success response has no usable Location
        """
        resp = self.client.execute(
            self.builder.post(token, USERS, representation),
            operation="create_user",
            target_id=username,
        )
        location = resp.headers.get("Location")
        logger.debug("[users] Location header: %s", location)
        try:
            user_id = extract_user_id(location)
        except ProtocolError as exc:
            exc.target_id = username
            exc.status_code = resp.status_code
            logger.error("[users] %s", exc)
            raise
        logger.info("[users] User '%s' created (id=%s)", username, user_id)
        return user_id

    def update_user(self, token: str, user_id: str, payload: Dict[str, Any]) -> None:
        """PUT a sparse UserRepresentation."""
        self.client.execute(
            self.builder.put(token, USER, payload, user_id=user_id),
            operation="update_user",
            target_id=user_id,
        )
        logger.info("[users] User %s updated (fields=%s)", user_id, sorted(payload))

    def reset_password(self, token: str, user_id: str, password: str) -> None:
        """Set a permanent password."""
        self.client.execute(
            self.builder.put(
                token,
                USER_RESET_PASSWORD,
                {"type": "password", "value": password, "temporary": False},
                user_id=user_id,
            ),
            operation="reset_password",
            target_id=user_id,
        )
        logger.info("[users] Password reset for user %s", user_id)

    def delete_user(self, token: str, user_id: str) -> None:
        self.client.execute(
            self.builder.delete(token, USER, user_id=user_id),
            operation="delete_user",
            target_id=user_id,
        )
        logger.info("[users] User %s deleted", user_id)

    def get_user(self, token: str, user_id: str) -> RemoteUserRecord:
        """Fetch one user by id.

        Raises:
            NotFoundError: If the user does not exist
            ProtocolError: If the body is not a user representation
        """
        resp = self.client.execute(
            self.builder.get(token, USER, user_id=user_id),
            operation="find_user_by_id",
            target_id=user_id,
        )
        return self._parse_record(resp, "find_user_by_id", user_id)

    def search_users(self, token: str, search: str = "", first: int = 0, max_results: int = 10) -> List[RemoteUserRecord]:
        params: Dict[str, Any] = {"first": first, "max": max_results}
        if search:
            params["search"] = search
        resp = self.client.execute(
            self.builder.get(token, USERS, params=params),
            operation="list_users",
        )
        body = self._json(resp, "list_users")
        if not isinstance(body, list):
            raise ProtocolError("User list response is not a JSON array", operation="list_users")
        try:
            return [RemoteUserRecord.from_representation(item) for item in body]
        except (KeyError, TypeError) as exc:
            raise ProtocolError(f"Malformed user in list response: {exc}", operation="list_users") from exc

    def count_users(self, token: str, search: str = "") -> int:
        params = {"search": search} if search else None
        resp = self.client.execute(
            self.builder.get(token, USERS_COUNT, params=params),
            operation="count_users",
        )
        body = self._json(resp, "count_users")
        if isinstance(body, bool) or not isinstance(body, int):
            raise ProtocolError(f"User count response is not an integer: {body!r}", operation="count_users")
        return body

    def _parse_record(self, resp, operation: str, user_id: str) -> RemoteUserRecord:
        body = self._json(resp, operation, user_id)
        try:
            return RemoteUserRecord.from_representation(body)
        except (KeyError, TypeError) as exc:
            raise ProtocolError(
                f"Malformed user representation: {exc}", operation=operation, target_id=user_id
            ) from exc

    @staticmethod
    def _json(resp, operation: str, target_id: Optional[str] = None):
        try:
            return resp.json()
        except ValueError as exc:
            raise ProtocolError(
                "Response body is not valid JSON",
                operation=operation,
                target_id=target_id,
                status_code=resp.status_code,
            ) from exc
