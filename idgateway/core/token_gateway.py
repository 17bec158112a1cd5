"""Token exchange against the realm's OpenID Connect endpoints.

Login (password grant), refresh (refresh_token grant) and logout all go
straight to the realm's public endpoints with the application's
confidential client; only the login path touches the admin API, to enrich
the answer with the principal's realm roles and, on a 401, to tell an
unverified account apart from a wrong password.
"""
from __future__ import annotations
import logging
from typing import Optional

import requests

from ..config import GatewayConfig
from .errors import (
    AuthenticationFailedError,
    EmailNotVerifiedError,
    GatewayError,
    IdpUnavailableError,
    InvalidCredentialsError,
    LogoutFailedError,
    RefreshFailedError,
    translate_keycloak_errors,
)
from .keycloak import KeycloakAPIError, UserService
from .models import TokenResponse
from .role_resolver import RoleResolver
from .validators import require_text, validate_secret
from .verification import VerificationGate

logger = logging.getLogger(__name__)


def _is_success(resp: requests.Response) -> bool:
    return 200 <= resp.status_code < 300


class TokenGateway:
    """Issues, refreshes and revokes tokens for application users."""

    def __init__(
        self,
        config: GatewayConfig,
        users: UserService,
        roles: RoleResolver,
        verification: VerificationGate,
    ):
        self.config = config
        self.users = users
        self.roles = roles
        self.verification = verification

    def _timeout(self, timeout: Optional[float]) -> float:
        return timeout if timeout is not None else self.config.request_timeout

    def _post(self, url: str, data: dict, timeout: Optional[float], headers: Optional[dict] = None) -> requests.Response:
        try:
            return requests.post(url, data=data, headers=headers, timeout=self._timeout(timeout))
        except requests.RequestException as exc:
            logger.error("[tokens] Identity provider unreachable at %s: %s", url, exc)
            raise IdpUnavailableError() from exc

    def login(self, identifier: str, secret: str, timeout: Optional[float] = None) -> TokenResponse:
        """Exchange user credentials for tokens carrying the user's realm roles.

        Args:
            identifier: Username or email
            secret: Password
            timeout: Per-call deadline in seconds (configured timeout if omitted)

        Raises:
            InvalidCredentialsError: Keycloak refused the credentials
            EmailNotVerifiedError: Credentials refused and the email is unverified
            IdpUnavailableError: Keycloak unreachable or failing (5xx)
            AuthenticationFailedError: Any other refusal
        """
        identifier = require_text(identifier, "Email")
        secret = validate_secret(secret)
        url = self.config.token_endpoint

        resp = self._post(
            url,
            {
                "grant_type": "password",
                "client_id": self.config.oidc_client_id,
                "client_secret": self.config.oidc_client_secret,
                "username": identifier,
                "password": secret,
            },
            timeout,
        )

        if not _is_success(resp):
            cause = KeycloakAPIError(resp.status_code, resp.text, url)
            if resp.status_code == 401:
                if not self.verification.is_email_verified(identifier):
                    logger.warning("[login] Refused login for '%s': email not verified", identifier)
                    raise EmailNotVerifiedError() from cause
                logger.warning("[login] Invalid credentials for '%s'", identifier)
                raise InvalidCredentialsError() from cause
            if resp.status_code >= 500:
                logger.error("[login] Token endpoint failed with status %s", resp.status_code)
                raise IdpUnavailableError() from cause
            logger.error("[login] Token endpoint refused login with status %s", resp.status_code)
            raise AuthenticationFailedError() from cause

        try:
            token = TokenResponse.from_dict(resp.json())
        except (ValueError, KeyError, TypeError) as exc:
            logger.error("[login] Malformed token response: %s", exc)
            raise AuthenticationFailedError() from exc

        token.roles = self._realm_roles_of(identifier)
        logger.info("[login] '%s' authenticated with roles %s", identifier, token.roles)
        return token

    def _realm_roles_of(self, identifier: str) -> list[str]:
        realm = self.config.keycloak_realm
        with translate_keycloak_errors(fallback=AuthenticationFailedError):
            principal = self.users.find_user(realm, identifier, exact=True)
            if principal is None:
                principal = self.users.find_user_by_email(realm, identifier)

        if principal is None:
            logger.error("[login] Token issued but no principal matches '%s'", identifier)
            raise AuthenticationFailedError()

        try:
            return self.roles.effective_realm_roles(principal.id)
        except IdpUnavailableError:
            raise
        except GatewayError as exc:
            logger.error("[login] Role lookup failed for '%s': %s", identifier, exc)
            raise AuthenticationFailedError() from exc

    def refresh_token(self, refresh_token: str, timeout: Optional[float] = None) -> TokenResponse:
        """Trade a refresh token for a new token pair (no role enrichment).

        Raises:
            RefreshFailedError: Keycloak refused the refresh token
            IdpUnavailableError: Keycloak unreachable
        """
        refresh_token = require_text(refresh_token, "Refresh token")
        url = self.config.token_endpoint
        resp = self._post(
            url,
            {
                "grant_type": "refresh_token",
                "client_id": self.config.oidc_client_id,
                "client_secret": self.config.oidc_client_secret,
                "refresh_token": refresh_token,
            },
            timeout,
        )
        if not _is_success(resp):
            logger.warning("[refresh] Token refresh refused with status %s", resp.status_code)
            raise RefreshFailedError() from KeycloakAPIError(resp.status_code, resp.text, url)

        try:
            token = TokenResponse.from_dict(resp.json())
        except (ValueError, KeyError, TypeError) as exc:
            logger.error("[refresh] Malformed token response: %s", exc)
            raise RefreshFailedError() from exc

        if not token.refresh_token:
            token.refresh_token = refresh_token
        return token

    def logout(self, access_token: str, refresh_token: str, timeout: Optional[float] = None) -> None:
        """End the user's session at the IdP.

        Raises:
            LogoutFailedError: Keycloak answered with a non-2xx status
            IdpUnavailableError: Keycloak unreachable
        """
        access_token = require_text(access_token, "Access token")
        refresh_token = require_text(refresh_token, "Refresh token")
        url = self.config.logout_endpoint
        resp = self._post(
            url,
            {
                "client_id": self.config.oidc_client_id,
                "client_secret": self.config.oidc_client_secret,
                "refresh_token": refresh_token,
            },
            timeout,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if not _is_success(resp):
            logger.warning("[logout] Logout refused with status %s", resp.status_code)
            raise LogoutFailedError() from KeycloakAPIError(resp.status_code, resp.text, url)
        logger.info("[logout] Session terminated")
