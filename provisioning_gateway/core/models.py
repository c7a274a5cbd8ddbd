"""Call-scoped value objects exchanged between the gateway and the orchestrator."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from provisioning_gateway.core import validators
from provisioning_gateway.core.keycloak.exceptions import InvalidRequestError

DEFAULT_ORGANIZER_ROLE = "ORGANIZADOR"


def is_organizer_role(role: str, organizer_role: str = DEFAULT_ORGANIZER_ROLE) -> bool:
    """Case-insensitive comparison against the organizer designator."""
    return bool(role) and role.strip().lower() == organizer_role.strip().lower()


def _invalid(exc: ValueError, operation: str) -> InvalidRequestError:
    return InvalidRequestError(str(exc), operation=operation)


@dataclass(frozen=True)
class OrganizationDetails:
    organization_name: str
    contact_email: str
    contact_phone: str
    document_number: str


@dataclass(frozen=True)
class UserCreateRequest:
    username: str
    email: str
    first_name: str
    last_name: str
    password: str
    role: str
    organization: Optional[OrganizationDetails] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], organizer_role: str = DEFAULT_ORGANIZER_ROLE) -> "UserCreateRequest":
        """Validate an inbound JSON payload (camelCase keys).

        Organization fields are required only when the role designates an
        organizer; otherwise they are ignored.

        Raises:
            InvalidRequestError: On any missing or malformed field
        """
        if not isinstance(payload, dict):
            raise InvalidRequestError("Request body must be a JSON object", operation="create_user")
        try:
            role = validators.require_text(payload.get("role"), "role")
            organization = None
            if is_organizer_role(role, organizer_role):
                organization = OrganizationDetails(
                    organization_name=validators.require_text(payload.get("organizationName"), "organizationName"),
                    contact_email=validators.validate_email(payload.get("contactEmail"), "contactEmail"),
                    contact_phone=validators.require_text(payload.get("contactPhone"), "contactPhone"),
                    document_number=validators.require_text(payload.get("documentNumber"), "documentNumber"),
                )
            return cls(
                username=validators.validate_username(payload.get("username")),
                email=validators.validate_email(payload.get("email")),
                first_name=validators.validate_name(payload.get("firstName"), "firstName"),
                last_name=validators.validate_name(payload.get("lastName"), "lastName"),
                password=validators.validate_password(payload.get("password")),
                role=role,
                organization=organization,
            )
        except ValueError as exc:
            raise _invalid(exc, "create_user") from exc

    def to_representation(self) -> Dict[str, Any]:
        """Keycloak UserRepresentation for the create call."""
        return {
            "username": self.username,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "enabled": True,
            "credentials": [
                {"type": "password", "value": self.password, "temporary": False},
            ],
        }


@dataclass(frozen=True)
class UserUpdateRequest:
    """Sparse update: ``None`` means "leave unchanged"."""
    username: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    password: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "UserUpdateRequest":
        """Validate an inbound JSON payload; absent or null keys stay None.

        Raises:
            InvalidRequestError: On missing username or malformed present fields
        """
        if not isinstance(payload, dict):
            raise InvalidRequestError("Request body must be a JSON object", operation="update_user")
        try:
            email = payload.get("email")
            first_name = payload.get("firstName")
            last_name = payload.get("lastName")
            password = payload.get("password")
            return cls(
                username=validators.validate_username(payload.get("username")),
                email=validators.validate_email(email) if email is not None else None,
                first_name=validators.validate_name(first_name, "firstName") if first_name is not None else None,
                last_name=validators.validate_name(last_name, "lastName") if last_name is not None else None,
                password=validators.validate_password(password) if password is not None else None,
            )
        except ValueError as exc:
            raise _invalid(exc, "update_user") from exc

    def to_sparse_payload(self) -> Dict[str, Any]:
        """Only the username plus fields that are present; absent keys are omitted."""
        payload: Dict[str, Any] = {"username": self.username}
        if self.email is not None:
            payload["email"] = self.email
        if self.first_name is not None:
            payload["firstName"] = self.first_name
        if self.last_name is not None:
            payload["lastName"] = self.last_name
        return payload


@dataclass(frozen=True)
class RemoteUserRecord:
    id: str
    username: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    enabled: bool = True

    @classmethod
    def from_representation(cls, data: Dict[str, Any]) -> "RemoteUserRecord":
        """Build from a Keycloak UserRepresentation.

        Raises:
            KeyError: If id or username is missing
        """
        return cls(
            id=data["id"],
            username=data["username"],
            email=data.get("email"),
            first_name=data.get("firstName"),
            last_name=data.get("lastName"),
            enabled=bool(data.get("enabled", True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "enabled": self.enabled,
        }


@dataclass(frozen=True)
class RoleDescriptor:
    id: str
    name: str

    def to_mapping(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class OrganizerRegistration:
    user_id: str
    organization_name: str
    contact_email: str
    contact_phone: str
    document_number: str

    @classmethod
    def for_user(cls, user_id: str, organization: OrganizationDetails) -> "OrganizerRegistration":
        return cls(
            user_id=user_id,
            organization_name=organization.organization_name,
            contact_email=organization.contact_email,
            contact_phone=organization.contact_phone,
            document_number=organization.document_number,
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "userId": self.user_id,
            "organizationName": self.organization_name,
            "contactEmail": self.contact_email,
            "contactPhone": self.contact_phone,
            "documentNumber": self.document_number,
        }


@dataclass(frozen=True)
class UserPage:
    total: int
    page: int
    page_size: int
    items: List[RemoteUserRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "page": self.page,
            "pageSize": self.page_size,
            "items": [item.to_dict() for item in self.items],
        }
