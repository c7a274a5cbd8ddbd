"""Admin access token acquisition via client credentials flow."""
from __future__ import annotations
import logging

import requests

from .client import KeycloakClient
from .exceptions import ProtocolError, UnauthenticatedError, UpstreamUnavailableError
from .request_builder import RequestBuilder

logger = logging.getLogger(__name__)

TOKEN_LOG_PREFIX = 8


def token_preview(token: str) -> str:
    """Return a log-safe prefix of a bearer token."""
    if not token:
        return "<empty>"
    return f"{token[:TOKEN_LOG_PREFIX]}..."


class AdminTokenProvider:
    """Fetch a fresh admin token for every orchestrator operation.

    No caching and no retry: each call performs one token request.
    """

    def __init__(
        self,
        client: KeycloakClient,
        builder: RequestBuilder,
        token_realm: str,
        client_id: str,
        client_secret: str,
    ):
        self.client = client
        self.builder = builder
        self.token_realm = token_realm
        self.client_id = client_id
        self._client_secret = client_secret

    def fetch_admin_token(self) -> str:
        """Obtain an admin access token.

        Returns:
            Access token string

        Raises:
            UnauthenticatedError: Token endpoint rejected the credentials (4xx)
            UpstreamUnavailableError: Token endpoint returned 5xx or was unreachable
            ProtocolError: 2xx body is not JSON or lacks access_token
        """
        request = self.builder.token_request(self.token_realm, self.client_id, self._client_secret)
        try:
            resp = self.client.send(request)
        except requests.RequestException as exc:
            logger.warning("[token] Token endpoint unreachable: %s", exc)
            raise UpstreamUnavailableError("token endpoint unavailable", operation="fetch_admin_token") from exc

        status = resp.status_code
        if status >= 500:
            logger.warning("[token] Token endpoint returned %s", status)
            raise UpstreamUnavailableError(
                "token endpoint unavailable", operation="fetch_admin_token", status_code=status
            )
        if status >= 400:
            logger.warning("[token] Token request rejected for client '%s' (%s)", self.client_id, status)
            raise UnauthenticatedError(
                "invalid or expired credentials", operation="fetch_admin_token", status_code=status
            )
        if not 200 <= status < 300:
            raise ProtocolError(
                f"Unexpected token endpoint status {status}", operation="fetch_admin_token", status_code=status
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            raise ProtocolError(
                "Token endpoint returned a non-JSON body", operation="fetch_admin_token", status_code=status
            ) from exc

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token or not isinstance(token, str):
            raise ProtocolError(
                "Token endpoint response has no access_token", operation="fetch_admin_token", status_code=status
            )

        logger.debug("[token] Admin token obtained: %s", token_preview(token))
        return token
