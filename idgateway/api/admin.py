"""Administrative endpoints, reserved to holders of the admin realm role."""
from __future__ import annotations
import logging

from flask import Blueprint, g, jsonify, request

from idgateway.api.auth import _json_body, get_gateway
from idgateway.api.decorators import require_admin

logger = logging.getLogger(__name__)

bp = Blueprint("admin", __name__)


@bp.route("/users", methods=["POST"])
@require_admin
def create_user():
    """Provision a user; the role defaults to the sign-up role."""
    body = _json_body()
    gateway = get_gateway()
    role = body.get("role") or gateway.config.signup_role
    gateway.provisioning.create_user(body.get("email"), body.get("password"), role)
    logger.info("[admin] %s provisioned '%s'", g.token_claims.get("sub"), body.get("email"))
    return jsonify({"message": "User created", "role": role}), 201


@bp.route("/users/<user_id>", methods=["DELETE"])
@require_admin
def delete_user(user_id):
    get_gateway().provisioning.delete_user(user_id)
    logger.info("[admin] %s deleted user %s", g.token_claims.get("sub"), user_id)
    return "", 204


@bp.route("/users/<user_id>/roles", methods=["POST"])
@require_admin
def grant_role(user_id):
    body = _json_body()
    get_gateway().provisioning.add_role_to_user(user_id, body.get("role"))
    return "", 204


@bp.route("/users/<user_id>/client-roles", methods=["POST"])
@require_admin
def grant_client_role(user_id):
    body = _json_body()
    get_gateway().provisioning.add_client_role_to_user(user_id, body.get("client_id"), body.get("role"))
    return "", 204


@bp.route("/users/unverified", methods=["GET"])
@require_admin
def list_unverified():
    users = get_gateway().provisioning.list_unverified_users()
    return jsonify([user.to_dict() for user in users]), 200


@bp.route("/users/lookup", methods=["GET"])
@require_admin
def lookup_user():
    user_id = get_gateway().provisioning.get_user_id(request.args.get("identifier"))
    return jsonify({"id": user_id}), 200
