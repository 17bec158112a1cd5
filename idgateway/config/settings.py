"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                logger.info("[settings] Loaded %s from /run/secrets", secret_name)
                return secret_value
        except OSError as e:
            logger.warning("[settings] Failed to read /run/secrets/%s: %s", secret_name, e)

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


@dataclass(frozen=True)
class GatewayConfig:
    """Gateway configuration, read once at startup."""
    keycloak_url: str
    oidc_client_id: str
    oidc_client_secret: str = ""
    keycloak_realm: str = "demo"

    # Administrative session (management realm)
    keycloak_admin: str = "admin"
    keycloak_admin_password: str = ""
    keycloak_admin_realm: str = "master"
    keycloak_admin_client_id: str = "admin-cli"

    request_timeout: float = 5.0

    # Roles
    signup_role: str = "aluno"
    admin_role: str = "administrador"

    demo_mode: bool = False

    @property
    def realm_url(self) -> str:
        return f"{self.keycloak_url.rstrip('/')}/realms/{self.keycloak_realm}"

    @property
    def issuer(self) -> str:
        return self.realm_url

    @property
    def token_endpoint(self) -> str:
        return f"{self.realm_url}/protocol/openid-connect/token"

    @property
    def logout_endpoint(self) -> str:
        return f"{self.realm_url}/protocol/openid-connect/logout"

    @property
    def jwks_url(self) -> str:
        return f"{self.realm_url}/protocol/openid-connect/certs"


def _get_or_default(var_name: str, demo_default: Optional[str] = None, demo_mode: bool = False, value: Optional[str] = None) -> str:
    """Return the configured value, the demo default, or fail outside demo mode."""
    value = value if value is not None else os.environ.get(var_name)
    if value:
        return value

    if demo_mode and demo_default is not None:
        logger.warning("[demo-mode] Using default for %s", var_name)
        return demo_default

    raise RuntimeError(f"Environment variable {var_name} is required in production mode.")


def load_settings() -> GatewayConfig:
    """Load gateway settings from the environment and /run/secrets."""
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"

    keycloak_url = _get_or_default("KEYCLOAK_URL", demo_default="http://127.0.0.1:8080", demo_mode=demo_mode)
    oidc_client_id = _get_or_default("OIDC_CLIENT_ID", demo_default="gateway-app", demo_mode=demo_mode)
    oidc_client_secret = _load_secret_from_file("oidc_client_secret", "OIDC_CLIENT_SECRET") or ""

    keycloak_admin = _get_or_default("KEYCLOAK_ADMIN", demo_default="admin", demo_mode=demo_mode)
    keycloak_admin_password = _get_or_default(
        "KEYCLOAK_ADMIN_PASSWORD",
        demo_default="admin",
        demo_mode=demo_mode,
        value=_load_secret_from_file("keycloak_admin_password", "KEYCLOAK_ADMIN_PASSWORD"),
    )

    timeout_raw = os.environ.get("KEYCLOAK_REQUEST_TIMEOUT", "5")
    try:
        request_timeout = float(timeout_raw)
    except ValueError:
        raise RuntimeError(f"KEYCLOAK_REQUEST_TIMEOUT must be a number of seconds, got {timeout_raw!r}")
    if request_timeout <= 0:
        raise RuntimeError("KEYCLOAK_REQUEST_TIMEOUT must be positive")

    cfg = GatewayConfig(
        keycloak_url=keycloak_url.rstrip("/"),
        oidc_client_id=oidc_client_id,
        oidc_client_secret=oidc_client_secret,
        keycloak_realm=os.environ.get("KEYCLOAK_REALM", "demo"),
        keycloak_admin=keycloak_admin,
        keycloak_admin_password=keycloak_admin_password,
        keycloak_admin_realm=os.environ.get("KEYCLOAK_ADMIN_REALM", "master"),
        keycloak_admin_client_id=os.environ.get("KEYCLOAK_ADMIN_CLIENT_ID", "admin-cli"),
        request_timeout=request_timeout,
        signup_role=os.environ.get("SIGNUP_ROLE", "aluno").strip(),
        admin_role=os.environ.get("ADMIN_ROLE", "administrador").strip(),
        demo_mode=demo_mode,
    )

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    logger.info("[settings] Mode=%s; realm=%s; client_id=%s", mode_label, cfg.keycloak_realm, cfg.oidc_client_id)
    if demo_mode:
        logger.warning("[settings] Demo credentials in use. Do not deploy with these defaults.")

    return cfg
