"""Map Keycloak HTTP failures onto the provisioning error taxonomy."""
from __future__ import annotations
import logging
from typing import Optional

import requests

from .exceptions import (
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
    ProvisioningError,
    UnauthenticatedError,
    UpstreamUnavailableError,
)

logger = logging.getLogger(__name__)

# Keep logged bodies short; Keycloak error pages can be large HTML documents.
_BODY_PREVIEW = 200


def _preview(body: Optional[str]) -> str:
    if not body:
        return ""
    body = body.strip()
    if len(body) > _BODY_PREVIEW:
        return body[:_BODY_PREVIEW] + "..."
    return body


def classify(
    status: int,
    body: Optional[str] = None,
    *,
    operation: Optional[str] = None,
    target_id: Optional[str] = None,
    response: Optional[requests.Response] = None,
    source: str = "Identity provider",
) -> ProvisioningError:
    """Return the domain error for a non-2xx Keycloak response.

    Args:
        status: HTTP status code
        body: Response body (used for the message of InvalidRequest)
        operation: Operation name for error context
        target_id: User id or role name the call addressed
        response: Original response, chained to InvalidRequest errors
        source: Remote system name used in messages

    Returns:
        ProvisioningError subclass instance (not raised)
    """
    context = {"operation": operation, "target_id": target_id, "status_code": status}

    if status == 404:
        what = f"'{target_id}'" if target_id else "resource"
        return NotFoundError(f"Resource {what} not found", **context)
    if status == 403:
        return ForbiddenError(f"Access denied by {source.lower()}", **context)
    if status == 401:
        return UnauthenticatedError("Invalid or expired token", **context)
    if status >= 500:
        return UpstreamUnavailableError(f"{source} error (HTTP {status})", **context)

    # Other 4xx: keep the underlying HTTP error as the cause
    detail = _preview(body) or f"HTTP {status}"
    error = InvalidRequestError(f"Request rejected by {source.lower()}: {detail}", **context)
    error.__cause__ = requests.HTTPError(f"{status} Client Error", response=response)
    return error


def classify_transport_error(
    exc: requests.RequestException,
    *,
    operation: Optional[str] = None,
    target_id: Optional[str] = None,
) -> ProvisioningError:
    """Return the domain error for a timeout or connection failure."""
    if isinstance(exc, requests.Timeout):
        message = "Identity provider timed out"
    elif isinstance(exc, requests.ConnectionError):
        message = "Identity provider unreachable"
    else:
        message = f"Identity provider request failed: {exc}"
    error = UpstreamUnavailableError(message, operation=operation, target_id=target_id)
    error.__cause__ = exc
    return error


def log_classified(error: ProvisioningError, body: Optional[str] = None) -> None:
    """Log a classified failure once, at the point of classification."""
    logger.warning(
        "[keycloak] %s: %s | body=%s",
        error.kind,
        error,
        _preview(body) or "-",
    )
