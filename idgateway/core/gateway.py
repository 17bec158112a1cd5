"""Wiring of the gateway components around one administrative session."""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional

from ..config import GatewayConfig
from .errors import ForbiddenError, UserNotFoundError, translate_keycloak_errors
from .keycloak import KeycloakClient, RealmService, RoleService, UserService
from .provisioning_service import ProvisioningService
from .role_resolver import RoleResolver
from .token_gateway import TokenGateway
from .token_validation import TokenValidator
from .verification import VerificationGate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityGateway:
    """The components sharing one Keycloak admin session.

    Built once per process by ``build_gateway`` and never reconfigured.
    """
    config: GatewayConfig
    client: KeycloakClient
    tokens: TokenGateway
    roles: RoleResolver
    verification: VerificationGate
    provisioning: ProvisioningService
    validator: TokenValidator

    def admin_claims(self, access_token: str) -> dict:
        """Return the claims of a valid token whose subject holds the admin realm role.

        Raises:
            InvalidTokenError: Signature, expiry, issuer or format check failed
            ForbiddenError: The subject is not an administrator
        """
        claims = self.validator.validate(access_token)
        subject = claims["sub"]
        try:
            allowed = self.provisioning.is_admin(subject)
        except UserNotFoundError:
            allowed = False
        if not allowed:
            logger.warning("[gateway] Admin access refused for subject %s", subject)
            raise ForbiddenError()
        return claims

    def has_admin_role(self, access_token: str) -> bool:
        """True when the token is valid and its subject holds the admin realm role."""
        try:
            self.admin_claims(access_token)
        except ForbiddenError:
            return False
        return True


def assemble_gateway(config: GatewayConfig, client: KeycloakClient, validator: Optional[TokenValidator] = None) -> IdentityGateway:
    """Build the components on top of an already authenticated client."""
    realm = config.keycloak_realm
    users = UserService(client)
    roles = RoleResolver(RoleService(client), RealmService(client), realm)
    verification = VerificationGate(users, realm)
    return IdentityGateway(
        config=config,
        client=client,
        tokens=TokenGateway(config, users, roles, verification),
        roles=roles,
        verification=verification,
        provisioning=ProvisioningService(users, roles, realm, admin_role=config.admin_role),
        validator=validator or TokenValidator(config.jwks_url, config.issuer),
    )


def build_gateway(config: GatewayConfig) -> IdentityGateway:
    """Open the administrative session and build the gateway.

    This is the single initialisation step; call it once at startup.

    Raises:
        IdpUnavailableError: Keycloak unreachable
        GatewayError: Keycloak refused the admin credentials
    """
    client = KeycloakClient(config.keycloak_url, timeout=config.request_timeout)
    with translate_keycloak_errors():
        client.authenticate_admin(
            config.keycloak_admin,
            config.keycloak_admin_password,
            realm=config.keycloak_admin_realm,
            client_id=config.keycloak_admin_client_id,
        )
    logger.info("[gateway] Identity gateway ready for realm '%s'", config.keycloak_realm)
    return assemble_gateway(config, client)
