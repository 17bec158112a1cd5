"""Input validation, applied before any call reaches Keycloak."""
from __future__ import annotations

from .errors import InvalidInputError

EMAIL_MAX_LENGTH = 254
NAME_MAX_LENGTH = 255


def require_text(value, field: str) -> str:
    """Return the trimmed value, rejecting missing or blank input."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{field} is required")
    return value.strip()


def validate_email(email) -> str:
    """Validate email address.

    Returns:
        Normalized (trimmed, lower-cased) email address

    Raises:
        InvalidInputError: If email is invalid
    """
    email = require_text(email, "Email").lower()
    if "@" not in email or any(char.isspace() for char in email):
        raise InvalidInputError("Invalid email format")

    local, domain = email.rsplit("@", 1)
    if not local or not domain or "." not in domain:
        raise InvalidInputError("Invalid email format")
    if len(email) > EMAIL_MAX_LENGTH:
        raise InvalidInputError("Email exceeds maximum length")

    return email


def validate_secret(secret) -> str:
    """Passwords are passed through untouched; only emptiness is checked here.

    Password policy is the IdP's.
    """
    if not isinstance(secret, str) or not secret:
        raise InvalidInputError("Password is required")
    return secret


def validate_name(name, field: str) -> str:
    """Validate a role or client name that ends up in an admin API path."""
    name = require_text(name, field)
    if len(name) > NAME_MAX_LENGTH:
        raise InvalidInputError(f"{field} exceeds maximum length")
    if "/" in name:
        raise InvalidInputError(f"{field} contains invalid characters")
    return name
