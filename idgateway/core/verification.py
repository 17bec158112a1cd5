"""Email verification gate."""
from __future__ import annotations
import logging

from .errors import translate_keycloak_errors
from .keycloak import UserService

logger = logging.getLogger(__name__)


class VerificationGate:
    """Answers whether a principal's email address has been verified.

    Only used to tell an unverified account apart from bad credentials
    after the token endpoint refused a login; it never grants access, which
    is why an unknown identifier counts as verified.
    """

    def __init__(self, users: UserService, realm: str):
        self.users = users
        self.realm = realm

    def is_email_verified(self, identifier: str) -> bool:
        with translate_keycloak_errors():
            principal = self.users.find_user_by_email(self.realm, identifier)
        if principal is None:
            logger.debug("[verification] No principal with email '%s', treating as verified", identifier)
            return True
        return principal.email_verified
