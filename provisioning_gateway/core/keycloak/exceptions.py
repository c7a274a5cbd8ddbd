"""Provisioning error taxonomy.

Every failure that leaves the orchestrator is one of these kinds, whatever
remote call produced it. The gateway maps each kind to a stable HTTP status.
"""
from __future__ import annotations
from typing import Optional


class ProvisioningError(Exception):
    """Base exception for all provisioning operations.

    Attributes:
        message: Human-readable description
        operation: Orchestrator operation or remote step that failed
        target_id: User id (or role name) the call was addressing, if known
        status_code: HTTP status returned by the remote system, if any
    """

    kind = "ProvisioningError"

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        target_id: Optional[str] = None,
        status_code: Optional[int] = None,
        user_id: Optional[str] = None,
    ):
        self.message = message
        self.operation = operation
        self.target_id = target_id
        self.status_code = status_code
        # Set once the user record exists, so partial failures name it
        self.user_id = user_id
        super().__init__(message)

    def __str__(self) -> str:
        context = []
        if self.operation:
            context.append(f"operation={self.operation}")
        if self.target_id:
            context.append(f"target={self.target_id}")
        if self.status_code is not None:
            context.append(f"status={self.status_code}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class UnauthenticatedError(ProvisioningError):
    """Admin credentials or caller token rejected (401)."""
    kind = "Unauthenticated"


class ForbiddenError(ProvisioningError):
    """IAM denied the operation (403)."""
    kind = "Forbidden"


class NotFoundError(ProvisioningError):
    """User or role does not exist (404)."""
    kind = "NotFound"


class RoleNotFoundError(NotFoundError):
    """No realm role has the requested name."""


class InvalidRequestError(ProvisioningError):
    """Input rejected locally or by IAM (other 4xx)."""
    kind = "InvalidRequest"


class UpstreamUnavailableError(ProvisioningError):
    """IAM returned 5xx, timed out, or could not be reached."""
    kind = "UpstreamUnavailable"


class ProtocolError(ProvisioningError):
    """IAM response violates the expected contract."""
    kind = "ProtocolFailure"


class DuplicateRoleError(ProtocolError):
    """More than one realm role has the requested name."""


class RoleAssignmentError(ProvisioningError):
    """User was created but the role-mapping step failed.

    The user record exists in IAM without its role. ``cause`` keeps the
    classified error of the failing step so its original kind is not lost.
    """
    kind = "RoleAssignmentFailure"

    def __init__(
        self,
        message: str,
        *,
        user_id: str,
        role: str,
        cause: Optional[ProvisioningError] = None,
        operation: Optional[str] = "assign_role",
    ):
        super().__init__(
            message,
            operation=operation,
            target_id=user_id,
            status_code=cause.status_code if cause is not None else None,
            user_id=user_id,
        )
        self.role = role
        self.cause = cause


class DependencyUnavailableError(ProvisioningError):
    """Secondary (organizer) service could not be reached."""
    kind = "DependencyUnavailable"
