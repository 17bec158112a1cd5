"""
Flask decorators for authentication and authorization.

Bearer access tokens are validated against the realm's signing keys and
the subject's effective realm roles are checked in Keycloak.
"""
from __future__ import annotations
import logging
from functools import wraps

from flask import current_app, g, request

from idgateway.core.errors import InvalidTokenError

logger = logging.getLogger(__name__)


def bearer_token() -> str:
    """Extract the access token from the Authorization header."""
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        logger.warning("[auth] Request without a Bearer token on %s", request.path)
        raise InvalidTokenError("Bearer access token required")
    return token.strip()


def require_admin(fn):
    """Require a valid Bearer token whose subject holds the admin realm role.

    Raises (rendered by the error handlers):
        InvalidTokenError: 401, missing or invalid token
        ForbiddenError: 403, the subject is not an administrator

    Example:
        @bp.route("/users/<user_id>", methods=["DELETE"])
        @require_admin
        def delete_user(user_id):
            ...
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        gateway = current_app.extensions["idgateway"]
        g.token_claims = gateway.admin_claims(bearer_token())
        return fn(*args, **kwargs)

    return wrapper
