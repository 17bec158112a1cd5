"""Authentication endpoints: login, refresh, logout, registration, password reset."""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from idgateway.api.decorators import bearer_token
from idgateway.core.errors import InvalidInputError
from idgateway.core.gateway import IdentityGateway

bp = Blueprint("auth", __name__)


def get_gateway() -> IdentityGateway:
    return current_app.extensions["idgateway"]


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise InvalidInputError("Request body must be a JSON object")
    return payload


@bp.route("/login", methods=["POST"])
def login():
    """Password login; the answer carries the user's realm roles."""
    body = _json_body()
    identifier = body.get("email") or body.get("username")
    token = get_gateway().tokens.login(identifier, body.get("password"))
    return jsonify(token.to_dict()), 200


@bp.route("/refresh", methods=["POST"])
def refresh():
    body = _json_body()
    token = get_gateway().tokens.refresh_token(body.get("refresh_token"))
    return jsonify(token.to_dict()), 200


@bp.route("/logout", methods=["POST"])
def logout():
    body = _json_body()
    get_gateway().tokens.logout(bearer_token(), body.get("refresh_token"))
    return "", 204


@bp.route("/register", methods=["POST"])
def register():
    """Self-registration with the configured sign-up role.

    The account stays unable to log in until the emailed verification link
    is followed.
    """
    body = _json_body()
    gateway = get_gateway()
    gateway.provisioning.create_user(body.get("email"), body.get("password"), gateway.config.signup_role)
    return jsonify({"message": "Account created. Check your inbox to verify your email."}), 201


@bp.route("/password-reset", methods=["POST"])
def password_reset():
    body = _json_body()
    get_gateway().provisioning.reset_password(body.get("email"))
    return jsonify({"message": "Password reset email sent."}), 202
