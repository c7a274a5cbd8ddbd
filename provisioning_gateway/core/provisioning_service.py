"""
Provisioning Service Layer

Orchestrates the multi-step user lifecycle against the Keycloak Admin API and
the organizer service. Each public method is one short-lived workflow: it
fetches a fresh admin token, sequences the dependent remote calls, and lets
classified errors propagate with their original kind.

Architecture:
    api/users.py ──> provisioning_service.py ──┬──> core.keycloak (token, users, roles) ──> Keycloak
                                               └──> organizer_client.py ──> Organizer service

Create workflow:
    fetch token -> POST user -> Location id -> resolve role -> POST role mapping
    -> (organizer role) POST organizer registration

There is no compensation: a user whose role mapping failed stays in Keycloak
and the caller receives RoleAssignmentError with the new user id.
"""

from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from typing import Optional

import requests

from provisioning_gateway.config import GatewayConfig
from provisioning_gateway.core.keycloak.client import KeycloakClient
from provisioning_gateway.core.keycloak.exceptions import (
    DependencyUnavailableError,
    DuplicateRoleError,
    InvalidRequestError,
    ProvisioningError,
    RoleAssignmentError,
    RoleNotFoundError,
)
from provisioning_gateway.core.keycloak.request_builder import RequestBuilder
from provisioning_gateway.core.keycloak.roles import RoleService
from provisioning_gateway.core.keycloak.token import AdminTokenProvider, token_preview
from provisioning_gateway.core.keycloak.users import UserService
from provisioning_gateway.core.models import (
    DEFAULT_ORGANIZER_ROLE,
    OrganizerRegistration,
    RemoteUserRecord,
    UserCreateRequest,
    UserPage,
    UserUpdateRequest,
    is_organizer_role,
)
from provisioning_gateway.core.organizer_client import OrganizerClient

logger = logging.getLogger(__name__)

POLICY_LOG = "log"
POLICY_RAISE = "raise"


@contextmanager
def _operation(name: str, target_id: Optional[str] = None):
    """Log unexpected exceptions with context, then re-raise them unchanged."""
    try:
        yield
    except ProvisioningError:
        raise
    except Exception:
        logger.exception("[provisioning] Unexpected failure in %s (target=%s)", name, target_id or "-")
        raise


class ProvisioningService:
    """User provisioning orchestrator.

    Stateless between calls: every operation obtains its own admin token and
    builds its own request descriptors. Collaborators are shared and safe for
    concurrent use.
    """

    def __init__(
        self,
        token_provider: AdminTokenProvider,
        users: UserService,
        roles: RoleService,
        organizer_client: Optional[OrganizerClient] = None,
        *,
        organizer_role: str = DEFAULT_ORGANIZER_ROLE,
        organizer_failure_policy: str = POLICY_LOG,
    ):
        if organizer_failure_policy not in (POLICY_LOG, POLICY_RAISE):
            raise ValueError(f"Unknown organizer failure policy: {organizer_failure_policy!r}")
        self.token_provider = token_provider
        self.users = users
        self.roles = roles
        self.organizer_client = organizer_client
        self.organizer_role = organizer_role
        self.organizer_failure_policy = organizer_failure_policy

    @classmethod
    def from_config(
        cls,
        cfg: GatewayConfig,
        session: Optional[requests.Session] = None,
        organizer_session: Optional[requests.Session] = None,
    ) -> "ProvisioningService":
        """Wire the orchestrator and its collaborators from configuration."""
        client = KeycloakClient(session=session, timeout=cfg.request_timeout)
        builder = RequestBuilder(cfg.keycloak_url, cfg.realm)
        token_provider = AdminTokenProvider(
            client,
            builder,
            token_realm=cfg.token_realm,
            client_id=cfg.client_id,
            client_secret=cfg.client_secret,
        )
        organizer_client = None
        if cfg.organizer_enabled:
            organizer_client = OrganizerClient(
                cfg.organizer_service_url,
                cfg.organizer_path,
                session=organizer_session,
                timeout=cfg.request_timeout,
            )
        return cls(
            token_provider,
            UserService(client, builder),
            RoleService(client, builder),
            organizer_client,
            organizer_role=cfg.organizer_role,
            organizer_failure_policy=cfg.organizer_failure_policy,
        )

    # ─────────────────────────────────────────────────────────────────────
    # Create
    # ─────────────────────────────────────────────────────────────────────

    def create_user(self, request: UserCreateRequest, caller_token: Optional[str] = None) -> str:
        """Create a user, assign its role, and register organizers.

        Args:
            request: Validated create request
            caller_token: Inbound bearer token, forwarded to the organizer
                service; the admin token is used when absent

        Returns:
            Id of the new user

        Raises:
            InvalidRequestError: Organizer role without organization details
            ProtocolError: Create succeeded without a usable Location header
            RoleNotFoundError: Requested role does not exist; carries user_id
            DuplicateRoleError: Role name is ambiguous; carries user_id
            RoleAssignmentError: Role lookup or mapping failed (user already created)
            DependencyUnavailableError: Organizer service unreachable
            ProvisioningError: Classified failure of the create call itself
        """
        organizer = is_organizer_role(request.role, self.organizer_role)
        if organizer and request.organization is None:
            raise InvalidRequestError(
                f"Organization details are required for role {request.role}",
                operation="create_user",
                target_id=request.username,
            )

        with _operation("create_user", request.username):
            token = self.token_provider.fetch_admin_token()
            logger.info("[provisioning] Creating user '%s' (token=%s)", request.username, token_preview(token))

            user_id = self.users.create_user(token, request.to_representation(), request.username)
            self._assign_role(token, user_id, request.role)

            if organizer:
                self._register_organizer(
                    OrganizerRegistration.for_user(user_id, request.organization),
                    caller_token or token,
                )
            return user_id

    def _assign_role(self, token: str, user_id: str, role_name: str) -> None:
        try:
            role = self.roles.find_role(token, role_name)
        except (RoleNotFoundError, DuplicateRoleError) as exc:
            logger.error("[provisioning] User %s exists without role '%s': %s", user_id, role_name, exc)
            exc.user_id = user_id
            raise
        except ProvisioningError as exc:
            logger.error("[provisioning] Role lookup failed for user %s: %s", user_id, exc)
            raise RoleAssignmentError(
                f"User {user_id} created but role '{role_name}' could not be resolved",
                user_id=user_id,
                role=role_name,
                cause=exc,
                operation="find_role",
            ) from exc

        try:
            self.roles.assign_realm_role(token, user_id, role)
        except ProvisioningError as exc:
            logger.error("[provisioning] Role mapping failed for user %s: %s", user_id, exc)
            raise RoleAssignmentError(
                f"User {user_id} created but role '{role_name}' could not be assigned",
                user_id=user_id,
                role=role_name,
                cause=exc,
            ) from exc

    def _register_organizer(self, registration: OrganizerRegistration, token: str) -> None:
        """Best-effort organizer registration; see organizer_failure_policy."""
        if self.organizer_client is None:
            if self.organizer_failure_policy == POLICY_RAISE:
                raise DependencyUnavailableError(
                    "Organizer service is not configured",
                    operation="register_organizer",
                    target_id=registration.user_id,
                )
            logger.warning("[provisioning] Organizer service not configured; skipped user %s", registration.user_id)
            return

        try:
            self.organizer_client.register(registration, token)
        except DependencyUnavailableError:
            raise
        except ProvisioningError as exc:
            if self.organizer_failure_policy == POLICY_RAISE:
                raise
            logger.error(
                "[provisioning] Organizer registration failed for user %s (kept user and role): %s",
                registration.user_id,
                exc,
            )

    # ─────────────────────────────────────────────────────────────────────
    # Update / Delete
    # ─────────────────────────────────────────────────────────────────────

    def update_user(self, user_id: str, request: UserUpdateRequest) -> None:
        """Apply a sparse update, then reset the password if one was given.

        Raises:
            ProvisioningError: Classified failure of either PUT
        """
        with _operation("update_user", user_id):
            token = self.token_provider.fetch_admin_token()
            self.users.update_user(token, user_id, request.to_sparse_payload())

            if request.password is None:
                logger.debug("[provisioning] No password in update for user %s; reset skipped", user_id)
                return
            self.users.reset_password(token, user_id, request.password)

    def delete_user(self, user_id: str) -> None:
        """Delete the IAM user only; role mappings and organizer records are not cascaded."""
        with _operation("delete_user", user_id):
            token = self.token_provider.fetch_admin_token()
            self.users.delete_user(token, user_id)

    # ─────────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────────

    def find_user_by_id(self, user_id: str) -> RemoteUserRecord:
        with _operation("find_user_by_id", user_id):
            token = self.token_provider.fetch_admin_token()
            return self.users.get_user(token, user_id)

    def find_all_users(self, search: str = "", first: int = 0, max_results: int = 10) -> UserPage:
        """List one page of users together with the total count.

        The list and count requests are independent and run concurrently.

        Args:
            search: Keycloak free-text search
            first: Zero-based offset
            max_results: Page size

        Returns:
            UserPage with page = first // max_results + 1

        Raises:
            InvalidRequestError: Negative offset or non-positive page size
        """
        if first < 0:
            raise InvalidRequestError("first must be zero or positive", operation="find_all_users")
        if max_results <= 0:
            raise InvalidRequestError("max must be positive", operation="find_all_users")

        with _operation("find_all_users"):
            token = self.token_provider.fetch_admin_token()
            with ThreadPoolExecutor(max_workers=2, thread_name_prefix="find-all-users") as executor:
                items_future = executor.submit(self.users.search_users, token, search, first, max_results)
                count_future = executor.submit(self.users.count_users, token, search)
                items = items_future.result()
                total = count_future.result()

            return UserPage(
                total=total,
                page=first // max_results + 1,
                page_size=max_results,
                items=items,
            )
