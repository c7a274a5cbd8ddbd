"""HTTP client for the organizer (secondary domain) service."""
from __future__ import annotations
import logging
from typing import Optional

import requests

from provisioning_gateway.core.keycloak.classifier import classify
from provisioning_gateway.core.keycloak.client import REQUEST_TIMEOUT, Timeout
from provisioning_gateway.core.keycloak.exceptions import DependencyUnavailableError, UpstreamUnavailableError
from provisioning_gateway.core.models import OrganizerRegistration

logger = logging.getLogger(__name__)

TRY_AGAIN_MESSAGE = "Organizer service is temporarily unavailable, please try again later"

# Faults where the service never produced a usable response.
CONNECTIVITY_ERRORS = (
    requests.ConnectionError,
    requests.Timeout,
    requests.exceptions.ChunkedEncodingError,
)


class OrganizerClient:
    """Register organizer records for newly created users.

    Usage:
        client = OrganizerClient("http://events:8080", "/organizers")
        client.register(OrganizerRegistration(...), bearer_token)
    """

    def __init__(
        self,
        base_url: str,
        path: str = "/organizers",
        session: Optional[requests.Session] = None,
        timeout: Timeout = REQUEST_TIMEOUT,
    ):
        self.url = f"{base_url.rstrip('/')}/{path.lstrip('/')}"
        self.session = session or requests.Session()
        self.timeout = timeout

    def register(self, registration: OrganizerRegistration, token: str) -> None:
        """POST one organizer registration.

        Args:
            registration: Organizer record for the new user
            token: Bearer token (caller's own token, or the admin token)

        Raises:
            DependencyUnavailableError: Connection refused/reset, premature close or timeout
            UpstreamUnavailableError: Any other transport failure (redirect loop, bad encoding, invalid URL)
            ProvisioningError: Classified non-2xx response
        """
        try:
            resp = self.session.post(
                self.url,
                json=registration.to_dict(),
                headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except CONNECTIVITY_ERRORS as exc:
            logger.error("[organizer] Service unreachable for user %s: %s", registration.user_id, exc)
            raise DependencyUnavailableError(
                TRY_AGAIN_MESSAGE,
                operation="register_organizer",
                target_id=registration.user_id,
            ) from exc
        except requests.RequestException as exc:
            logger.error("[organizer] Request failed for user %s: %s", registration.user_id, exc)
            raise UpstreamUnavailableError(
                f"Organizer service request failed: {exc}",
                operation="register_organizer",
                target_id=registration.user_id,
            ) from exc

        if not 200 <= resp.status_code < 300:
            raise classify(
                resp.status_code,
                resp.text,
                operation="register_organizer",
                target_id=registration.user_id,
                response=resp,
                source="Organizer service",
            )
        logger.info("[organizer] Organizer registered for user %s", registration.user_id)
