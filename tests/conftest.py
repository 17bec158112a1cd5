"""Pytest shared fixtures: network guard rails and an in-memory Keycloak."""
import json
import pathlib
import sys
import uuid
from typing import Optional
from unittest.mock import MagicMock
from urllib.parse import unquote

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests

from idgateway.config import GatewayConfig
from idgateway.core.gateway import assemble_gateway
from idgateway.core.keycloak import KeycloakAPIError, KeycloakConnectionError


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch, request):
    """
    Prevent unit tests from reaching a real Keycloak.

    Integration tests are explicitly marked with @pytest.mark.integration and
    are allowed to perform real HTTP calls by skipping this fixture. Unit
    tests that need an HTTP answer patch the verb they use themselves.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _guard(method):
        def _stub(url, *args, **kwargs):
            raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")
        return _stub

    for verb in ("get", "post", "put", "delete"):
        monkeypatch.setattr(requests, verb, _guard(verb.upper()))


class StubResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code: int = 200, payload=None, headers: Optional[dict] = None, url: str = ""):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}
        self.url = url
        self.text = "" if payload is None else json.dumps(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


# ─────────────────────────────────────────────────────────────────────────────
# In-memory Keycloak
# ─────────────────────────────────────────────────────────────────────────────
class FakeKeycloak:
    """In-memory Keycloak standing in for an authenticated KeycloakClient.

    Implements the admin API paths the services call plus the realm's
    token and logout endpoints (see ``token_endpoint``),
    so a test can drive a whole login or provisioning flow against it.
    Errors are raised the way KeycloakClient raises them.
    """

    def __init__(self, base_url: str = "http://keycloak.test", realm: str = "demo"):
        self.base_url = base_url
        self.realm = realm
        self.is_authenticated = True
        self.users: dict[str, dict] = {}
        self.passwords: dict[str, str] = {}
        self.realm_roles: dict[str, dict] = {}
        self.clients: dict[str, dict] = {}
        self.client_roles: dict[str, dict[str, dict]] = {}
        self.realm_mappings: dict[str, list[str]] = {}
        self.client_mappings: dict[str, list[tuple[str, str]]] = {}
        self.actions_sent: list[tuple[str, list[str]]] = []
        self.refresh_tokens: dict[str, str] = {}
        self.calls: list[tuple[str, str]] = []
        self.omit_location = False
        self._failures: list[tuple[str, str, Optional[int]]] = []

        self.add_realm_role("offline_access")
        self.add_realm_role("uma_authorization")
        self.add_realm_role(f"default-roles-{realm}", composites=["offline_access", "uma_authorization"])
        self.add_realm_role("aluno")
        self.add_realm_role("administrador", composites=["aluno"])
        self.add_client("gateway-app", roles=["gestor"])

    # ── seeding ──────────────────────────────────────────────────────────
    def add_realm_role(self, name: str, composites: Optional[list] = None) -> dict:
        role = {"id": f"role-{name}", "name": name, "clientRole": False, "containerId": self.realm,
                "composites": list(composites or [])}
        self.realm_roles[name] = role
        return role

    def add_client(self, client_id: str, roles: Optional[list] = None) -> dict:
        client = {"id": f"uuid-{client_id}", "clientId": client_id}
        self.clients[client["id"]] = client
        self.client_roles[client["id"]] = {
            name: {"id": f"{client_id}-{name}", "name": name, "clientRole": True, "containerId": client["id"]}
            for name in roles or []
        }
        return client

    def add_user(self, username: str, password: str = "Secret123!", email: Optional[str] = None,
                 email_verified: bool = True, roles: Optional[list] = None) -> str:
        user_id = str(uuid.uuid4())
        self.users[user_id] = {
            "id": user_id,
            "username": username.lower(),
            "email": (email or username).lower(),
            "enabled": True,
            "emailVerified": email_verified,
        }
        self.passwords[user_id] = password
        self.realm_mappings[user_id] = [f"default-roles-{self.realm}"] + list(roles or [])
        self.client_mappings[user_id] = []
        return user_id

    def fail(self, method: str, fragment: str, status: Optional[int] = None) -> None:
        """Make every matching admin call fail; ``status=None`` simulates an unreachable server."""
        self._failures.append((method.upper(), fragment, status))

    # ── views used by assertions ─────────────────────────────────────────
    def user_by_username(self, username: str) -> Optional[dict]:
        for user in self.users.values():
            if user["username"] == username.lower():
                return user
        return None

    def effective_realm_role_names(self, user_id: str) -> list[str]:
        names: list[str] = []

        def expand(name):
            if name in names:
                return
            names.append(name)
            for child in self.realm_roles[name]["composites"]:
                expand(child)

        for name in self.realm_mappings.get(user_id, []):
            expand(name)
        return names

    # ── KeycloakClient surface ───────────────────────────────────────────
    def get(self, path, params=None, **kwargs):
        return self._dispatch("GET", path, params=params or {})

    def post(self, path, json=None, data=None, **kwargs):
        return self._dispatch("POST", path, body=json)

    def put(self, path, json=None, **kwargs):
        return self._dispatch("PUT", path, body=json)

    def delete(self, path, **kwargs):
        return self._dispatch("DELETE", path)

    def _dispatch(self, method, path, params=None, body=None):
        self.calls.append((method, path))
        url = f"{self.base_url}{path}"
        for fail_method, fragment, status in self._failures:
            if fail_method == method and fragment in path:
                if status is None:
                    raise KeycloakConnectionError(url)
                raise KeycloakAPIError(status, "injected failure", url)

        prefix = f"/admin/realms/{self.realm}/"
        assert path.startswith(prefix), path
        parts = [unquote(part) for part in path[len(prefix):].split("/")]
        status, payload, headers = self._route(method, parts, params or {}, body)
        if status >= 400:
            raise KeycloakAPIError(status, json.dumps(payload or {}), url)
        return StubResponse(status, payload, headers, url)

    def _route(self, method, parts, params, body):
        head = parts[0]
        if head == "users":
            return self._users_route(method, parts[1:], params, body)
        if head == "roles" and method == "GET":
            role = self.realm_roles.get(parts[1])
            return (200, role, None) if role else (404, {"error": "Could not find role"}, None)
        if head == "clients" and method == "GET":
            if len(parts) == 1:
                wanted = params.get("clientId", "")
                return 200, [c for c in self.clients.values() if c["clientId"].startswith(wanted)], None
            role = self.client_roles.get(parts[1], {}).get(parts[3])
            return (200, role, None) if role else (404, {"error": "Could not find role"}, None)
        raise AssertionError(f"Unrouted admin call {method} {'/'.join(parts)}")

    def _users_route(self, method, parts, params, body):
        if not parts:
            if method == "POST":
                return self._create_user(body)
            return 200, self._query_users(params), None

        user_id = parts[0]
        if user_id not in self.users:
            return 404, {"error": "User not found"}, None

        rest = parts[1:]
        if not rest:
            if method == "GET":
                return 200, self.users[user_id], None
            if method == "DELETE":
                del self.users[user_id]
                self.realm_mappings.pop(user_id, None)
                self.client_mappings.pop(user_id, None)
                return 204, None, None
        if rest == ["execute-actions-email"] and method == "PUT":
            self.actions_sent.append((user_id, list(body)))
            return 204, None, None
        if rest[:1] == ["role-mappings"]:
            return self._role_mappings(method, user_id, rest[1:], body)
        raise AssertionError(f"Unrouted user call {method} {'/'.join(parts)}")

    def _create_user(self, rep):
        username = rep["username"].lower()
        email = (rep.get("email") or "").lower()
        for user in self.users.values():
            if user["username"] == username or (email and user["email"] == email):
                return 409, {"errorMessage": "User exists with same username"}, None
        user_id = self.add_user(
            username,
            password=rep["credentials"][0]["value"],
            email=email or None,
            email_verified=rep.get("emailVerified", False),
        )
        headers = {} if self.omit_location else {
            "Location": f"{self.base_url}/admin/realms/{self.realm}/users/{user_id}"
        }
        return 201, None, headers

    def _query_users(self, params):
        users = list(self.users.values())
        if "username" in params:
            return [u for u in users if u["username"] == params["username"].lower()]
        if "email" in params:
            return [u for u in users if u["email"] == params["email"].lower()]
        if "search" in params:
            needle = params["search"].lower()
            return [u for u in users if needle in u["username"] or needle in u["email"]]
        first = int(params.get("first", 0))
        size = int(params.get("max", 100))
        return users[first:first + size]

    def _role_mappings(self, method, user_id, parts, body):
        if parts == ["realm", "composite"] and method == "GET":
            names = self.effective_realm_role_names(user_id)
            return 200, [self.realm_roles[name] for name in names], None
        if parts == ["realm"] and method == "POST":
            for mapping in body:
                if mapping["name"] not in self.realm_mappings[user_id]:
                    self.realm_mappings[user_id].append(mapping["name"])
            return 204, None, None
        if parts[:1] == ["clients"] and method == "POST":
            for mapping in body:
                entry = (parts[1], mapping["name"])
                if entry not in self.client_mappings[user_id]:
                    self.client_mappings[user_id].append(entry)
            return 204, None, None
        raise AssertionError(f"Unrouted role-mapping call {method} {'/'.join(parts)}")

    # ── realm OIDC endpoints (patched over requests.post) ────────────────
    def token_endpoint(self, url, data=None, headers=None, timeout=None, **kwargs):
        self.calls.append(("POST", url))
        if url.endswith("/protocol/openid-connect/logout"):
            return self._logout(url, data)
        assert url.endswith(f"/realms/{self.realm}/protocol/openid-connect/token"), url

        if data["grant_type"] == "password":
            identifier = data["username"].lower()
            for user_id, user in self.users.items():
                if identifier in (user["username"], user["email"]):
                    if self.passwords[user_id] != data["password"] or not user["emailVerified"]:
                        break
                    return StubResponse(200, self._issue(user_id), url=url)
            return StubResponse(401, {"error": "invalid_grant", "error_description": "Invalid user credentials"}, url=url)

        if data["grant_type"] == "refresh_token":
            user_id = self.refresh_tokens.pop(data["refresh_token"], None)
            if user_id is None:
                return StubResponse(400, {"error": "invalid_grant", "error_description": "Token is not active"}, url=url)
            return StubResponse(200, self._issue(user_id), url=url)

        return StubResponse(400, {"error": "unsupported_grant_type"}, url=url)

    def _issue(self, user_id):
        refresh = f"refresh-{uuid.uuid4()}"
        self.refresh_tokens[refresh] = user_id
        return {
            "access_token": f"access-{uuid.uuid4()}",
            "refresh_token": refresh,
            "expires_in": 300,
            "refresh_expires_in": 1800,
            "token_type": "Bearer",
            "scope": "profile email",
        }

    def _logout(self, url, data):
        if self.refresh_tokens.pop(data.get("refresh_token"), None) is None:
            return StubResponse(400, {"error": "invalid_grant"}, url=url)
        return StubResponse(204, None, url=url)


# ─────────────────────────────────────────────────────────────────────────────
# Gateway fixtures
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def gateway_config():
    return GatewayConfig(
        keycloak_url="http://keycloak.test",
        oidc_client_id="gateway-app",
        oidc_client_secret="client-secret",
        keycloak_realm="demo",
        keycloak_admin_password="admin",
        request_timeout=5.0,
    )


@pytest.fixture()
def fake_keycloak():
    return FakeKeycloak()


@pytest.fixture()
def token_endpoint(monkeypatch, fake_keycloak):
    """Route requests.post to the fake realm's token and logout endpoints."""
    monkeypatch.setattr(requests, "post", fake_keycloak.token_endpoint)
    return fake_keycloak


@pytest.fixture()
def gateway(gateway_config, fake_keycloak):
    return assemble_gateway(gateway_config, fake_keycloak, validator=MagicMock())


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (requires running Keycloak)"
    )
