"""Keycloak user management operations."""
from __future__ import annotations
import logging
from typing import Optional, List
from urllib.parse import quote

from ..models import Principal
from .client import KeycloakClient
from .exceptions import KeycloakAPIError

logger = logging.getLogger(__name__)

PAGE_SIZE = 100


class UserService:
    """Service for managing Keycloak users."""

    def __init__(self, client: KeycloakClient):
        """Initialize user service.

        Args:
            client: Authenticated Keycloak client
        """
        self.client = client

    def search_users(self, realm: str, identifier: str, exact: bool = True) -> List[Principal]:
        """Search users by username.

        With ``exact`` the IdP is asked for an exact match and the answer is
        filtered again on the username, so a loose server-side search can
        never leak a neighbour. Without it a free-text search is issued.
        """
        if exact:
            params = {"username": identifier, "exact": "true"}
        else:
            params = {"search": identifier}
        resp = self.client.get(f"/admin/realms/{realm}/users", params=params)
        users = [Principal.from_representation(rep) for rep in resp.json() or []]
        if exact:
            wanted = identifier.lower()
            users = [user for user in users if user.username.lower() == wanted]
        return users

    def find_user(self, realm: str, identifier: str, exact: bool = True) -> Optional[Principal]:
        """Return the first user matching the identifier, or None."""
        users = self.search_users(realm, identifier, exact=exact)
        return users[0] if users else None

    def find_user_by_email(self, realm: str, email: str) -> Optional[Principal]:
        """Return the user whose email matches (case-insensitive), or None."""
        resp = self.client.get(f"/admin/realms/{realm}/users", params={"email": email, "exact": "true"})
        wanted = email.lower()
        for rep in resp.json() or []:
            if (rep.get("email") or "").lower() == wanted:
                return Principal.from_representation(rep)
        return None

    def get_user(self, realm: str, user_id: str) -> Optional[Principal]:
        """Fetch a user by id, None when Keycloak answers 404."""
        try:
            resp = self.client.get(f"/admin/realms/{realm}/users/{quote(user_id, safe='')}")
        except KeycloakAPIError as exc:
            if exc.status_code == 404:
                return None
            raise
        return Principal.from_representation(resp.json())

    def list_users(self, realm: str) -> List[Principal]:
        """Return every user of the realm, paging through the admin API."""
        users: List[Principal] = []
        first = 0
        while True:
            resp = self.client.get(
                f"/admin/realms/{realm}/users",
                params={"first": first, "max": PAGE_SIZE, "briefRepresentation": "false"},
            )
            page = resp.json() or []
            users.extend(Principal.from_representation(rep) for rep in page)
            if len(page) < PAGE_SIZE:
                return users
            first += PAGE_SIZE

    def create_user(self, realm: str, representation: dict) -> Optional[str]:
        """Create a user from a full Keycloak user representation.

        Returns:
            The new user id when Keycloak reports it in the Location header

        Raises:
            KeycloakAPIError: 409 when username or email is already taken
        """
        resp = self.client.post(f"/admin/realms/{realm}/users", json=representation)
        location = resp.headers.get("Location") or ""
        user_id = location.rstrip("/").rsplit("/", 1)[-1] if "/users/" in location else None
        logger.info("[users] User '%s' created (id=%s)", representation.get("username"), user_id or "?")
        return user_id

    def delete_user(self, realm: str, user_id: str) -> None:
        """Delete a user by id."""
        self.client.delete(f"/admin/realms/{realm}/users/{quote(user_id, safe='')}")
        logger.info("[users] User %s deleted", user_id)

    def execute_actions_email(self, realm: str, user_id: str, actions: List[str]) -> None:
        """Ask Keycloak to email the user a link for the given required actions.

        Args:
            realm: Realm name
            user_id: User ID
            actions: Required action aliases (e.g. VERIFY_EMAIL, UPDATE_PASSWORD)
        """
        self.client.put(
            f"/admin/realms/{realm}/users/{quote(user_id, safe='')}/execute-actions-email",
            json=list(actions),
        )
        logger.info("[users] Sent %s email to user %s", ",".join(actions), user_id)
