"""Keycloak Admin API client library.

This package is the gateway's single handle on the Keycloak admin API.

Architecture:
- client.py: HTTP client with admin authentication and auto-refresh
- users.py: User search, creation, deletion and email actions
- roles.py: Realm/client role lookup, assignment and effective roles
- realm.py: Realm-scoped lookups (clients)
- exceptions.py: Transport-level exceptions

Usage:
    from idgateway.core.keycloak import KeycloakClient, UserService

    client = KeycloakClient("http://keycloak:8080")
    client.authenticate_admin("admin", "password")

    user_service = UserService(client)
    user = user_service.find_user("demo", "alice@example.com")
"""
from .client import KeycloakClient, REQUEST_TIMEOUT
from .exceptions import (
    KeycloakError,
    KeycloakAPIError,
    KeycloakConnectionError,
)
from .realm import RealmService
from .roles import RoleService
from .users import UserService

__all__ = [
    # Client
    "KeycloakClient",
    "REQUEST_TIMEOUT",

    # Exceptions
    "KeycloakError",
    "KeycloakAPIError",
    "KeycloakConnectionError",

    # Services
    "RealmService",
    "RoleService",
    "UserService",
]
