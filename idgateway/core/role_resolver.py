"""Effective-role lookup and role grants for principals."""
from __future__ import annotations
import logging

from .errors import (
    ClientNotFoundError,
    RoleNotFoundError,
    UserNotFoundError,
    translate_keycloak_errors,
)
from .keycloak import RealmService, RoleService
from .validators import require_text, validate_name

logger = logging.getLogger(__name__)


class RoleResolver:
    """Resolves role names against the application realm and grants them.

    Keycloak is the only source of truth: roles are looked up by name on
    every call, nothing is cached here.
    """

    def __init__(self, roles: RoleService, realms: RealmService, realm: str):
        self.roles = roles
        self.realms = realms
        self.realm = realm

    def effective_realm_roles(self, principal_id: str) -> list[str]:
        """Names of the realm roles the principal holds, composites included, in IdP order."""
        principal_id = require_text(principal_id, "User id")
        with translate_keycloak_errors(not_found=UserNotFoundError):
            roles = self.roles.list_effective_realm_roles(self.realm, principal_id)
        return [role.name for role in roles]

    def has_role(self, principal_id: str, role_name: str) -> bool:
        return role_name in self.effective_realm_roles(principal_id)

    def assign_realm_role(self, principal_id: str, role_name: str) -> None:
        """Grant a realm role by name.

        Granting a role the principal already holds is not an error.

        Raises:
            RoleNotFoundError: No realm role has that name
            UserNotFoundError: Keycloak does not know the principal
            IdpUnavailableError: Keycloak unreachable
        """
        principal_id = require_text(principal_id, "User id")
        role_name = validate_name(role_name, "Role")
        with translate_keycloak_errors(not_found=UserNotFoundError):
            role = self.roles.get_realm_role(self.realm, role_name)
            if role is None:
                logger.warning("[roles] Realm role '%s' not found in realm '%s'", role_name, self.realm)
                raise RoleNotFoundError(f"Role '{role_name}' not found")
            self.roles.assign_realm_role(self.realm, principal_id, role)

    def assign_client_role(self, principal_id: str, client_identifier: str, role_name: str) -> None:
        """Grant a role defined by a client application.

        The client is resolved by its public ``clientId``, then the role
        within that client's role set.

        Raises:
            ClientNotFoundError: No client with that clientId
            RoleNotFoundError: The client has no role with that name
            UserNotFoundError: Keycloak does not know the principal
            IdpUnavailableError: Keycloak unreachable
        """
        principal_id = require_text(principal_id, "User id")
        client_identifier = validate_name(client_identifier, "Client")
        role_name = validate_name(role_name, "Role")
        with translate_keycloak_errors(not_found=UserNotFoundError):
            client = self.realms.get_client(self.realm, client_identifier)
            if client is None:
                logger.warning("[roles] Client '%s' not found in realm '%s'", client_identifier, self.realm)
                raise ClientNotFoundError(f"Client '{client_identifier}' not found")

            role = self.roles.get_client_role(self.realm, client["id"], role_name)
            if role is None:
                logger.warning("[roles] Role '%s' not found on client '%s'", role_name, client_identifier)
                raise RoleNotFoundError(f"Role '{role_name}' not found on client '{client_identifier}'")

            self.roles.assign_client_role(self.realm, principal_id, client["id"], role)
