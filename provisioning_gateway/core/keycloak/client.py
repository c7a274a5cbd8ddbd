"""Low-level HTTP client for Keycloak Admin API.

Sends request descriptors over a shared ``requests.Session`` with connect/read
timeouts and turns every non-2xx response into a classified error.
"""
from __future__ import annotations
import logging
from typing import Optional, Tuple, Union

import requests

from .classifier import classify, classify_transport_error, log_classified
from .request_builder import RequestDescriptor

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT: Tuple[float, float] = (3.05, 5)

Timeout = Union[float, Tuple[float, float]]


class KeycloakClient:
    """HTTP client for Keycloak Admin API.

    The session is shared across concurrent operations; the client keeps no
    per-call state, so one instance serves the whole process. No retries.

    Usage:
        client = KeycloakClient(timeout=(3.05, 5))
        resp = client.execute(builder.get(token, USER, user_id="123"), operation="find_user")
    """

    def __init__(self, session: Optional[requests.Session] = None, timeout: Timeout = REQUEST_TIMEOUT):
        self.session = session or requests.Session()
        self.timeout = timeout

    def send(self, request: RequestDescriptor) -> requests.Response:
        """Send a descriptor and return the raw response.

        Raises:
            requests.RequestException: On timeout or transport failure
        """
        return self.session.request(
            request.method,
            request.url,
            headers=request.headers,
            json=request.json,
            data=request.data,
            params=request.params,
            timeout=self.timeout,
        )

    def execute(
        self,
        request: RequestDescriptor,
        *,
        operation: str,
        target_id: Optional[str] = None,
    ) -> requests.Response:
        """Send a descriptor and raise a classified error unless it returns 2xx.

        Args:
            request: Descriptor built by RequestBuilder
            operation: Operation name for error context and logs
            target_id: User id or role name addressed by the call

        Returns:
            2xx Response object

        Raises:
            ProvisioningError: Classified HTTP or transport failure
        """
        logger.debug("[keycloak] %s %s (%s)", request.method, request.url, operation)
        try:
            resp = self.send(request)
        except requests.RequestException as exc:
            error = classify_transport_error(exc, operation=operation, target_id=target_id)
            log_classified(error)
            raise error from exc

        if not 200 <= resp.status_code < 300:
            error = classify(
                resp.status_code,
                resp.text,
                operation=operation,
                target_id=target_id,
                response=resp,
            )
            log_classified(error, resp.text)
            raise error
        return resp

    def close(self) -> None:
        self.session.close()
