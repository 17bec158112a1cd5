"""Keycloak transport-level exceptions.

These never leave the core components on their own: the gateway services
translate them into the error kinds of ``idgateway.core.errors`` and keep
them as ``__cause__``.
"""


class KeycloakError(Exception):
    """Base exception for all Keycloak operations."""
    pass


class KeycloakAPIError(KeycloakError):
    """HTTP error from the Keycloak API.

    Attributes:
        status_code: HTTP status code
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


class KeycloakConnectionError(KeycloakError):
    """Keycloak could not be reached (connection refused, DNS, timeout)."""

    def __init__(self, endpoint: str):
        self.endpoint = endpoint
        super().__init__(f"Keycloak unreachable: {endpoint}")
