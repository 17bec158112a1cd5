"""Error kinds surfaced by the gateway.

Every error carries a stable, user-safe ``message`` and the HTTP status the
Flask layer answers with. Internal details (Keycloak responses, transport
errors) stay on ``__cause__`` and in the logs.
"""
from __future__ import annotations
import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Type

from .keycloak.exceptions import KeycloakAPIError, KeycloakConnectionError

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Base class for all gateway error kinds."""

    status = 500
    error = "gateway_error"
    default_message = "Identity operation failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert to the JSON error body."""
        return {"error": self.error, "message": self.message}


class InvalidInputError(GatewayError):
    status = 400
    error = "invalid_input"
    default_message = "Invalid input"


class InvalidCredentialsError(GatewayError):
    status = 401
    error = "invalid_credentials"
    default_message = "Invalid credentials. Check your email and password."


class EmailNotVerifiedError(GatewayError):
    status = 403
    error = "email_not_verified"
    default_message = "Email not verified. Check your inbox and follow the verification link."


class AuthenticationFailedError(GatewayError):
    status = 502
    error = "authentication_failed"
    default_message = "Authentication with the identity provider failed"


class IdpUnavailableError(GatewayError):
    """Identity provider unreachable; retry policy belongs to the caller."""
    status = 503
    error = "idp_unavailable"
    default_message = "The identity provider is unavailable. Try again later."


class DuplicateIdentifierError(GatewayError):
    status = 409
    error = "duplicate_identifier"
    default_message = "An account with this identifier already exists"


class RoleNotFoundError(GatewayError):
    status = 404
    error = "role_not_found"
    default_message = "Role not found"


class ClientNotFoundError(GatewayError):
    status = 404
    error = "client_not_found"
    default_message = "Client application not found"


class ProvisioningFailedError(GatewayError):
    status = 502
    error = "provisioning_failed"
    default_message = "User provisioning failed"


class UserNotFoundError(GatewayError):
    status = 404
    error = "user_not_found"
    default_message = "User not found"


class RefreshFailedError(GatewayError):
    status = 401
    error = "refresh_failed"
    default_message = "Session refresh failed. Sign in again."


class LogoutFailedError(GatewayError):
    status = 400
    error = "logout_failed"
    default_message = "Logout failed"


class InvalidTokenError(GatewayError):
    status = 401
    error = "invalid_token"
    default_message = "Invalid or expired access token"


class ForbiddenError(GatewayError):
    status = 403
    error = "forbidden"
    default_message = "Administrator role required"


@contextmanager
def translate_keycloak_errors(
    not_found: Optional[Type[GatewayError]] = None,
    fallback: Type[GatewayError] = GatewayError,
) -> Iterator[None]:
    """Map Keycloak transport errors raised inside the block to error kinds.

    Connection failures and 5xx answers become ``IdpUnavailableError``, a 404
    becomes ``not_found`` when given, anything else ``fallback``. Gateway
    errors raised inside the block pass through untouched.
    """
    try:
        yield
    except KeycloakConnectionError as exc:
        logger.error("[keycloak] %s", exc)
        raise IdpUnavailableError() from exc
    except KeycloakAPIError as exc:
        if exc.status_code == 404 and not_found is not None:
            raise not_found() from exc
        logger.error("[keycloak] Admin API call failed: %s", exc)
        if exc.status_code >= 500:
            raise IdpUnavailableError() from exc
        raise fallback() from exc
