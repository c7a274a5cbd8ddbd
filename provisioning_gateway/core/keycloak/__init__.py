"""Keycloak Admin API client library.

Architecture:
- exceptions.py: Provisioning error taxonomy
- classifier.py: HTTP status / transport fault -> error kind
- request_builder.py: Pure builder of authenticated request descriptors
- client.py: Shared HTTP transport with timeouts and classification
- token.py: Admin token via client credentials
- users.py: User create/update/delete/find/list
- roles.py: Role lookup and realm role mapping

users.py and roles.py depend on ``provisioning_gateway.core.models`` and are
imported from their modules directly:

    from provisioning_gateway.core.keycloak.users import UserService
"""
from .client import KeycloakClient, REQUEST_TIMEOUT
from .classifier import classify, classify_transport_error
from .exceptions import (
    ProvisioningError,
    UnauthenticatedError,
    ForbiddenError,
    NotFoundError,
    InvalidRequestError,
    UpstreamUnavailableError,
    ProtocolError,
    RoleAssignmentError,
    DependencyUnavailableError,
)
from .request_builder import RequestBuilder, RequestDescriptor
from .token import AdminTokenProvider, token_preview

__all__ = [
    # Client
    "KeycloakClient",
    "REQUEST_TIMEOUT",
    "RequestBuilder",
    "RequestDescriptor",
    "AdminTokenProvider",
    "token_preview",

    # Classification
    "classify",
    "classify_transport_error",

    # Exceptions
    "ProvisioningError",
    "UnauthenticatedError",
    "ForbiddenError",
    "NotFoundError",
    "InvalidRequestError",
    "UpstreamUnavailableError",
    "ProtocolError",
    "RoleAssignmentError",
    "DependencyUnavailableError",
]
