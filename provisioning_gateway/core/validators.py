"""Input validation helpers for user data."""
from __future__ import annotations
import re

USERNAME_MAX_LENGTH = 64
EMAIL_MAX_LENGTH = 254
NAME_MAX_LENGTH = 128

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def require_text(value, field: str) -> str:
    """Return the stripped value or raise if it is missing or blank.

    Raises:
        ValueError: If value is not a non-blank string
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field} is required")
    return value.strip()


def validate_username(username) -> str:
    """Validate username (non-blank, no whitespace, bounded length).

    Returns:
        Trimmed username

    Raises:
        ValueError: If username is invalid
    """
    username = require_text(username, "username")
    if len(username) > USERNAME_MAX_LENGTH:
        raise ValueError(f"username must not exceed {USERNAME_MAX_LENGTH} characters")
    if any(char.isspace() for char in username):
        raise ValueError("username must not contain whitespace")
    return username


def validate_email(email, field: str = "email") -> str:
    """Validate email address syntax.

    Returns:
        Trimmed email address

    Raises:
        ValueError: If email is invalid
    """
    email = require_text(email, field)
    if len(email) > EMAIL_MAX_LENGTH:
        raise ValueError(f"{field} exceeds maximum length")
    if not EMAIL_PATTERN.match(email):
        raise ValueError(f"{field} format is invalid")
    return email


def validate_name(name, field: str) -> str:
    """Validate first/last name fields.

    Args:
        name: Name to validate
        field: Field name for error messages (e.g., "firstName")

    Returns:
        Trimmed name

    Raises:
        ValueError: If name is invalid
    """
    name = require_text(name, field)
    if len(name) > NAME_MAX_LENGTH:
        raise ValueError(f"{field} exceeds maximum length")
    if any(char in name for char in "<>\"`;&|$"):
        raise ValueError(f"{field} contains invalid characters")
    return name


def validate_password(password, field: str = "password") -> str:
    """Password must be present and non-blank; policy is enforced by IAM."""
    if not isinstance(password, str) or not password.strip():
        raise ValueError(f"{field} is required")
    return password
