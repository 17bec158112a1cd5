"""Administrative CLI for Keycloak-backed application users.

This module serves as a CLI wrapper around idgateway.core services.
"""
from __future__ import annotations
import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from idgateway.config import load_settings
from idgateway.core.errors import GatewayError
from idgateway.core.gateway import build_gateway


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Keycloak user administration")
    parser.add_argument("--log-level", default=os.environ.get("LOG_LEVEL", "INFO"))

    sub = parser.add_subparsers(dest="cmd")

    sc = sub.add_parser("create-user", help="Create a user, grant a role, send the verification email")
    sc.add_argument("--email", required=True)
    sc.add_argument("--password", default=os.environ.get("NEW_USER_PASSWORD"))
    sc.add_argument("--role", default=None, help="Realm role (defaults to SIGNUP_ROLE)")

    sd = sub.add_parser("delete-user")
    sd.add_argument("--id", required=True, dest="user_id")

    sp = sub.add_parser("reset-password", help="Email an UPDATE_PASSWORD link")
    sp.add_argument("--email", required=True)

    sr = sub.add_parser("grant-role")
    sr.add_argument("--id", required=True, dest="user_id")
    sr.add_argument("--role", required=True)

    scr = sub.add_parser("grant-client-role")
    scr.add_argument("--id", required=True, dest="user_id")
    scr.add_argument("--client-id", required=True)
    scr.add_argument("--role", required=True)

    sub.add_parser("list-unverified")

    su = sub.add_parser("user-id")
    su.add_argument("--identifier", required=True)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Command-line entry point."""
    parser = _parser()
    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return

    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s %(message)s")

    if args.cmd == "create-user" and not args.password:
        parser.error("Missing password (use --password or NEW_USER_PASSWORD)")

    try:
        gateway = build_gateway(load_settings())
        provisioning = gateway.provisioning

        if args.cmd == "create-user":
            role = args.role or gateway.config.signup_role
            provisioning.create_user(args.email, args.password, role)
            print(f"[create-user] '{args.email}' created with role '{role}'")
        elif args.cmd == "delete-user":
            provisioning.delete_user(args.user_id)
            print(f"[delete-user] {args.user_id} deleted")
        elif args.cmd == "reset-password":
            provisioning.reset_password(args.email)
            print(f"[reset-password] Reset email sent to '{args.email}'")
        elif args.cmd == "grant-role":
            provisioning.add_role_to_user(args.user_id, args.role)
            print(f"[grant-role] '{args.role}' granted to {args.user_id}")
        elif args.cmd == "grant-client-role":
            provisioning.add_client_role_to_user(args.user_id, args.client_id, args.role)
            print(f"[grant-client-role] '{args.role}' of '{args.client_id}' granted to {args.user_id}")
        elif args.cmd == "list-unverified":
            users = [user.to_dict() for user in provisioning.list_unverified_users()]
            print(json.dumps(users, indent=2))
        elif args.cmd == "user-id":
            print(provisioning.get_user_id(args.identifier))
    except GatewayError as e:
        print(f"[{args.cmd}] Error: {e.message}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
