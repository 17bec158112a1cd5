"""Keycloak role lookup and assignment operations."""
from __future__ import annotations
import logging
from typing import Optional, List
from urllib.parse import quote

from ..models import Role
from .client import KeycloakClient
from .exceptions import KeycloakAPIError

logger = logging.getLogger(__name__)


class RoleService:
    """Service for Keycloak realm and client roles."""

    def __init__(self, client: KeycloakClient):
        """Initialize role service.

        Args:
            client: Authenticated Keycloak client
        """
        self.client = client

    def get_realm_role(self, realm: str, role_name: str) -> Optional[Role]:
        """Return the realm role named ``role_name``, None when it does not exist."""
        return self._lookup(f"/admin/realms/{realm}/roles/{quote(role_name, safe='')}")

    def get_client_role(self, realm: str, client_uuid: str, role_name: str) -> Optional[Role]:
        """Return the role ``role_name`` of a client (by internal UUID), None when absent."""
        return self._lookup(
            f"/admin/realms/{realm}/clients/{quote(client_uuid, safe='')}/roles/{quote(role_name, safe='')}"
        )

    def _lookup(self, path: str) -> Optional[Role]:
        try:
            resp = self.client.get(path)
        except KeycloakAPIError as exc:
            if exc.status_code == 404:
                return None
            raise
        return Role.from_representation(resp.json())

    def assign_realm_role(self, realm: str, user_id: str, role: Role) -> None:
        """Grant a realm role to a user.

        Keycloak answers 204 whether or not the mapping already existed; a
        409 from older servers is treated the same way.
        """
        self._assign(
            f"/admin/realms/{realm}/users/{quote(user_id, safe='')}/role-mappings/realm",
            role,
        )
        logger.info("[roles] Granted realm role '%s' to user %s", role.name, user_id)

    def assign_client_role(self, realm: str, user_id: str, client_uuid: str, role: Role) -> None:
        """Grant a client role to a user."""
        self._assign(
            f"/admin/realms/{realm}/users/{quote(user_id, safe='')}"
            f"/role-mappings/clients/{quote(client_uuid, safe='')}",
            role,
        )
        logger.info("[roles] Granted client role '%s' (client %s) to user %s", role.name, client_uuid, user_id)

    def _assign(self, path: str, role: Role) -> None:
        try:
            self.client.post(path, json=[role.to_mapping()])
        except KeycloakAPIError as exc:
            if exc.status_code != 409:
                raise

    def list_effective_realm_roles(self, realm: str, user_id: str) -> List[Role]:
        """Return the user's effective realm roles, composites expanded, in IdP order."""
        resp = self.client.get(
            f"/admin/realms/{realm}/users/{quote(user_id, safe='')}/role-mappings/realm/composite"
        )
        return [Role.from_representation(rep) for rep in resp.json() or []]
