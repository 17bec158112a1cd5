"""
Access-token validation against the realm's signing keys.

Security:
- RSA-SHA256 signature verification via the realm JWKS (RFC 7517)
- Expiration, not-before and issuer validation (RFC 7519)
- Signing keys cached by the JWKS client (1-hour refresh)
"""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional

import jwt
from jwt import PyJWKClient
from jwt.exceptions import ExpiredSignatureError, InvalidIssuerError, PyJWTError

from .errors import InvalidTokenError
from .validators import require_text

logger = logging.getLogger(__name__)


class TokenValidator:
    """Verifies access tokens issued by the application realm."""

    def __init__(self, jwks_url: str, issuer: str, jwks_client: Optional[PyJWKClient] = None):
        self.jwks_url = jwks_url
        self.issuer = issuer
        self._jwks_client = jwks_client

    @property
    def jwks_client(self) -> PyJWKClient:
        # Built on first use so startup does not depend on the JWKS endpoint
        if self._jwks_client is None:
            logger.info("[tokens] Initializing JWKS client for: %s", self.jwks_url)
            self._jwks_client = PyJWKClient(
                self.jwks_url,
                cache_keys=True,
                max_cached_keys=16,
                lifespan=3600,
            )
        return self._jwks_client

    def validate(self, access_token: str) -> Dict[str, Any]:
        """Return the claims of a valid access token.

        Raises:
            InvalidTokenError: Signature, expiry, issuer or format check failed
        """
        access_token = require_text(access_token, "Access token")
        try:
            signing_key = self.jwks_client.get_signing_key_from_jwt(access_token)
            return jwt.decode(
                access_token,
                signing_key.key,
                algorithms=["RS256"],
                issuer=self.issuer,
                options={
                    "verify_aud": False,
                    "require": ["exp", "iat", "sub"],
                },
                leeway=5,
            )
        except ExpiredSignatureError as exc:
            raise InvalidTokenError("Access token expired") from exc
        except InvalidIssuerError as exc:
            logger.warning("[tokens] Token from unexpected issuer: %s", exc)
            raise InvalidTokenError() from exc
        except PyJWTError as exc:
            logger.warning("[tokens] Access token rejected: %s", exc)
            raise InvalidTokenError() from exc
