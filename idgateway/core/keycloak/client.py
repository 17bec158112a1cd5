"""Low-level HTTP client for the Keycloak Admin API.

Handles the administrative session (authentication, token refresh) and the
HTTP verbs used by the admin services.
"""
from __future__ import annotations
import logging
import threading
from typing import Optional, Dict, Any
from datetime import datetime, timedelta

import requests

from .exceptions import KeycloakAPIError, KeycloakConnectionError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 5

# Fallback lifetime when the token endpoint does not report expires_in
DEFAULT_TOKEN_LIFETIME = 60
REFRESH_LEEWAY = 10


class KeycloakClient:
    """HTTP client for the Keycloak Admin API with automatic token management.

    One instance is the process-wide administrative session: it is created
    and authenticated once at startup and then shared by every service.
    Re-authentication is serialised so concurrent callers never race on the
    stored token.

    Usage:
        client = KeycloakClient("http://keycloak:8080")
        client.authenticate_admin("admin", "password")
        response = client.get("/admin/realms/demo/users")
    """

    def __init__(self, base_url: str, timeout: float = REQUEST_TIMEOUT):
        """Initialize Keycloak client.

        Args:
            base_url: Keycloak base URL (e.g. http://keycloak:8080)
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None
        self._auth_params: Dict[str, Any] = {}
        self._lock = threading.Lock()

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    def authenticate_admin(
        self,
        username: str,
        password: str,
        realm: str = "master",
        client_id: str = "admin-cli",
    ) -> str:
        """Authenticate as admin user and store credentials for auto-refresh.

        Args:
            username: Admin username
            password: Admin password
            realm: Management realm holding the admin account
            client_id: Public client used for the password grant

        Returns:
            Access token
        """
        self._auth_params = {
            "username": username,
            "password": password,
            "realm": realm,
            "client_id": client_id,
        }
        with self._lock:
            self._refresh_admin_token()
        logger.info("[keycloak] Admin session established (realm=%s, user=%s)", realm, username)
        return self._token

    def _refresh_admin_token(self) -> None:
        token, expires_in = self._get_admin_token(**self._auth_params)
        self._token = token
        self._token_expires_at = datetime.now() + timedelta(seconds=expires_in)

    def _ensure_authenticated(self) -> str:
        """Return a valid token, re-authenticating if it is about to expire."""
        if not self._auth_params:
            raise KeycloakAPIError(401, "Not authenticated - call authenticate_admin first", "")

        with self._lock:
            if not self._token or datetime.now() >= self._token_expires_at - timedelta(seconds=REFRESH_LEEWAY):
                logger.debug("[keycloak] Admin token expired or expiring soon, re-authenticating")
                self._refresh_admin_token()
            return self._token

    def get(self, path: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute GET request with automatic authentication.

        Raises:
            KeycloakAPIError: On HTTP error
            KeycloakConnectionError: When Keycloak cannot be reached
        """
        return self._send("get", path, params=params, **kwargs)

    def post(self, path: str, json: Any = None, data: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute POST request with automatic authentication."""
        return self._send("post", path, json=json, data=data, **kwargs)

    def put(self, path: str, json: Any = None, **kwargs) -> requests.Response:
        """Execute PUT request with automatic authentication."""
        return self._send("put", path, json=json, **kwargs)

    def delete(self, path: str, **kwargs) -> requests.Response:
        """Execute DELETE request with automatic authentication."""
        return self._send("delete", path, **kwargs)

    def _send(self, method: str, path: str, **kwargs) -> requests.Response:
        token = self._ensure_authenticated()
        url = f"{self.base_url}{path}"
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {token}"

        try:
            resp = getattr(requests, method)(url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise KeycloakConnectionError(url) from exc
        self._handle_error(resp)
        return resp

    def _get_admin_token(self, username: str, password: str, realm: str, client_id: str) -> tuple[str, int]:
        """Obtain an admin token via direct access grant."""
        url = f"{self.base_url}/realms/{realm}/protocol/openid-connect/token"
        data = {
            "grant_type": "password",
            "client_id": client_id,
            "username": username,
            "password": password,
        }
        try:
            resp = requests.post(url, data=data, timeout=self.timeout)
        except requests.RequestException as exc:
            raise KeycloakConnectionError(url) from exc
        if resp.status_code != 200:
            raise KeycloakAPIError(resp.status_code, resp.text, url)
        payload = resp.json()
        expires_in = int(payload.get("expires_in") or DEFAULT_TOKEN_LIFETIME)
        return payload["access_token"], expires_in

    def _handle_error(self, resp: requests.Response) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            KeycloakAPIError: If response status indicates error
        """
        if resp.status_code >= 400:
            raise KeycloakAPIError(resp.status_code, resp.text, resp.url)
