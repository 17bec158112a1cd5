"""
Provisioning Service Layer: user lifecycle against Keycloak

Creating a user is several independent Keycloak calls (create, look up the
new id, grant the role, send the verification email) with no transaction
around them. This module drives them in order and, when a step fails after
the user exists, deletes it again so no half-configured account is left
able to log in.

Architecture:
    Flask /auth/register ──┐
                           ├──> provisioning_service.py ──> idgateway.core.keycloak ──> Keycloak
    scripts/idp_admin.py ──┘

Error policy:
    - Every failure is surfaced as one of the kinds in idgateway.core.errors
    - A duplicate identifier is reported before anything is allocated, so it
      never triggers a rollback
    - Rollback is best effort: if the delete fails too, the original error is
      still the one raised and the orphaned id is logged
"""
from __future__ import annotations
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from .errors import (
    ClientNotFoundError,
    DuplicateIdentifierError,
    GatewayError,
    IdpUnavailableError,
    InvalidInputError,
    ProvisioningFailedError,
    RoleNotFoundError,
    UserNotFoundError,
    translate_keycloak_errors,
)
from .keycloak import KeycloakAPIError, KeycloakConnectionError, UserService
from .models import Credential, Principal
from .role_resolver import RoleResolver
from .validators import require_text, validate_email, validate_name, validate_secret

logger = logging.getLogger(__name__)

VERIFY_EMAIL = "VERIFY_EMAIL"
UPDATE_PASSWORD = "UPDATE_PASSWORD"

# Errors already meaningful to the caller; anything else becomes ProvisioningFailedError
_CLASSIFIED_ERRORS = (
    DuplicateIdentifierError,
    RoleNotFoundError,
    ClientNotFoundError,
    IdpUnavailableError,
    InvalidInputError,
    ProvisioningFailedError,
)


@dataclass
class ProvisioningAttempt:
    """Unit of work for one create_user call."""
    identifier: str
    principal_id: Optional[str] = None

    @property
    def allocated(self) -> bool:
        return self.principal_id is not None


def build_user_representation(identifier: str, secret: str) -> dict:
    """Keycloak user payload for a self-registered account.

    The identifier doubles as username, email and display name; the password
    is permanent and the email starts out unverified.
    """
    return {
        "username": identifier,
        "email": identifier,
        "firstName": identifier,
        "lastName": identifier,
        "enabled": True,
        "emailVerified": False,
        "credentials": [Credential(value=secret, temporary=False).to_representation()],
    }


class ProvisioningService:
    """Creates, deletes and administers application users in one realm."""

    def __init__(self, users: UserService, roles: RoleResolver, realm: str, admin_role: str = "administrador"):
        self.users = users
        self.roles = roles
        self.realm = realm
        self.admin_role = admin_role

    # ─────────────────────────────────────────────────────────────────────
    # Creation workflow
    # ─────────────────────────────────────────────────────────────────────

    def create_user(self, identifier: str, secret: str, role_name: str) -> None:
        """Create a user, grant it a realm role and send the verification email.

        Args:
            identifier: Email address, used as login name and display name
            secret: Initial (permanent) password
            role_name: Realm role to grant

        Raises:
            InvalidInputError: Rejected locally, nothing sent to Keycloak
            DuplicateIdentifierError: The identifier is already registered
            RoleNotFoundError: The role does not exist (user rolled back)
            IdpUnavailableError: Keycloak unreachable (user rolled back if created)
            ProvisioningFailedError: Any other failure (user rolled back if created)
        """
        identifier = validate_email(identifier)
        secret = validate_secret(secret)
        role_name = validate_name(role_name, "Role")
        representation = build_user_representation(identifier, secret)

        with self._provisioning_attempt(identifier) as attempt:
            attempt.principal_id = self._create_principal(representation)
            attempt.principal_id = self._resolve_created(identifier)
            self.roles.assign_realm_role(attempt.principal_id, role_name)
            self.users.execute_actions_email(self.realm, attempt.principal_id, [VERIFY_EMAIL])

        logger.info("[provisioning] User '%s' provisioned with role '%s'", identifier, role_name)

    def _create_principal(self, representation: dict) -> Optional[str]:
        try:
            return self.users.create_user(self.realm, representation)
        except KeycloakAPIError as exc:
            if exc.status_code == 409:
                logger.warning("[provisioning] Identifier '%s' already registered", representation["username"])
                raise DuplicateIdentifierError() from exc
            raise

    def _resolve_created(self, identifier: str) -> str:
        matches = self.users.search_users(self.realm, identifier, exact=True)
        if len(matches) != 1:
            logger.error(
                "[provisioning] Expected one principal for '%s' after creation, found %d",
                identifier,
                len(matches),
            )
            raise ProvisioningFailedError()
        return matches[0].id

    @contextmanager
    def _provisioning_attempt(self, identifier: str) -> Iterator[ProvisioningAttempt]:
        """Scope one creation; roll the principal back on any non-success exit."""
        attempt = ProvisioningAttempt(identifier)
        try:
            yield attempt
        except Exception as exc:
            error = self._classify(attempt, exc)
            if attempt.allocated:
                self._compensate(attempt)
            if error is exc:
                raise
            raise error from exc
        except BaseException:
            if attempt.allocated:
                self._compensate(attempt)
            raise

    def _classify(self, attempt: ProvisioningAttempt, exc: Exception) -> GatewayError:
        if isinstance(exc, _CLASSIFIED_ERRORS):
            return exc
        if isinstance(exc, KeycloakConnectionError):
            logger.error("[provisioning] Keycloak unreachable while provisioning '%s'", attempt.identifier)
            return IdpUnavailableError()
        logger.error(
            "[provisioning] Unexpected failure while provisioning '%s': %s",
            attempt.identifier,
            exc,
            exc_info=exc,
        )
        return ProvisioningFailedError()

    def _compensate(self, attempt: ProvisioningAttempt) -> None:
        """Delete the principal allocated by a failed attempt.

        Never raises: a failure here is logged and the caller keeps seeing
        the error that triggered the rollback.
        """
        try:
            self.users.delete_user(self.realm, attempt.principal_id)
        except Exception as exc:
            logger.error(
                "[provisioning] Rollback failed, principal %s ('%s') left orphaned: %s",
                attempt.principal_id,
                attempt.identifier,
                exc,
            )
            return
        logger.warning(
            "[provisioning] Rolled back principal %s ('%s')",
            attempt.principal_id,
            attempt.identifier,
        )

    # ─────────────────────────────────────────────────────────────────────
    # Administrative operations
    # ─────────────────────────────────────────────────────────────────────

    def delete_user(self, principal_id: str) -> None:
        """Delete a user by id.

        Raises:
            UserNotFoundError: No user with that id
        """
        principal_id = require_text(principal_id, "User id")
        with translate_keycloak_errors(not_found=UserNotFoundError):
            self.users.delete_user(self.realm, principal_id)

    def reset_password(self, identifier: str) -> None:
        """Email the user an UPDATE_PASSWORD action link.

        Raises:
            UserNotFoundError: No user with that email; no email is sent
        """
        identifier = validate_email(identifier)
        with translate_keycloak_errors(not_found=UserNotFoundError):
            principal = self.users.find_user_by_email(self.realm, identifier)
            if principal is None:
                logger.warning("[provisioning] Password reset requested for unknown email '%s'", identifier)
                raise UserNotFoundError(f"No user with email {identifier}")
            self.users.execute_actions_email(self.realm, principal.id, [UPDATE_PASSWORD])
        logger.info("[provisioning] Password reset email sent to '%s'", identifier)

    def add_role_to_user(self, principal_id: str, role_name: str) -> None:
        """Grant an additional realm role to an existing user."""
        self.roles.assign_realm_role(principal_id, role_name)

    def add_client_role_to_user(self, principal_id: str, client_identifier: str, role_name: str) -> None:
        """Grant a client role to an existing user."""
        self.roles.assign_client_role(principal_id, client_identifier, role_name)

    def list_unverified_users(self) -> list[Principal]:
        with translate_keycloak_errors():
            users = self.users.list_users(self.realm)
        return [user for user in users if not user.email_verified]

    def get_user_id(self, identifier: str) -> str:
        """Return the id of the user whose username is exactly ``identifier``.

        Raises:
            UserNotFoundError: No such user
        """
        identifier = require_text(identifier, "Identifier")
        with translate_keycloak_errors():
            principal = self.users.find_user(self.realm, identifier, exact=True)
        if principal is None:
            raise UserNotFoundError()
        return principal.id

    def is_admin(self, principal_id: str) -> bool:
        return self.roles.has_role(principal_id, self.admin_role)
