"""Keycloak realm-level lookups."""
from __future__ import annotations
from typing import Optional

from .client import KeycloakClient


class RealmService:
    """Service for realm-scoped Keycloak objects."""

    def __init__(self, client: KeycloakClient):
        """Initialize realm service.

        Args:
            client: Authenticated Keycloak client
        """
        self.client = client

    def get_client(self, realm: str, client_id: str) -> Optional[dict]:
        """Return the client representation matching client_id, if it exists.

        Keycloak's ``clientId`` filter is a prefix search on some versions,
        so the answer is filtered again on an exact match.

        Args:
            realm: Realm name
            client_id: Public client identifier (not the internal UUID)

        Returns:
            Client representation or None if not found
        """
        resp = self.client.get(f"/admin/realms/{realm}/clients", params={"clientId": client_id})
        for client in resp.json() or []:
            if client.get("clientId") == client_id:
                return client
        return None
