#!/usr/bin/env python3
"""
TaskGuard administrative CLI -- provision organizations and users.

Usage:
  python main.py create-org "Acme Corp"
  python main.py create-user alice --role ADMIN --org-id 1
  python main.py create-user dave --role OWNER --org-id 1 --password s3cret
  python main.py list-users
  python main.py list-orgs
  python main.py update-user 3 --role VIEWER --org-id 2
  python main.py delete-user 3

Environment variables:
  DATABASE_URL  SQLAlchemy URL of the TaskGuard database (see core/config.py).
                --db-url overrides it.

create-user prompts for the password when --password is omitted.
update-user changes role and organization. A new organization applies to the
user's next request; a new role applies once they log in again.
delete-user also deletes every task the user owns.
"""

from __future__ import annotations

import argparse
import getpass
import sys

from sqlalchemy.exc import IntegrityError

from auth.models import Organization, Role, User
from auth.store import UserStore
from auth.tokens import hash_password
from core.config import get_settings
from core.database import create_db_engine

_MIN_PASSWORD_LENGTH = 6


def _create_org(store: UserStore, args: argparse.Namespace) -> int:
    org_id = store.create_organization(Organization(name=args.name))
    print(f"  Created organization {args.name!r} (id={org_id})")
    return 0


def _create_user(store: UserStore, args: argparse.Namespace) -> int:
    if args.org_id is not None and store.get_organization(args.org_id) is None:
        print(f"  [!] Organization {args.org_id} does not exist.")
        return 1
    password = args.password or getpass.getpass(f"Password for {args.username}: ")
    if len(password) < _MIN_PASSWORD_LENGTH:
        print(f"  [!] Password must be at least {_MIN_PASSWORD_LENGTH} characters.")
        return 1
    user = User(
        username=args.username,
        hashed_password=hash_password(password),
        role=Role(args.role),
        organization_id=args.org_id,
    )
    try:
        user_id = store.create_user(user)
    except IntegrityError:
        print(f"  [!] A user named {args.username!r} already exists.")
        return 1
    if args.org_id is None:
        print("  [!] No organization given: a non-OWNER user without one sees no tasks.")
    print(f"  Created {user.role.value} {args.username!r} (id={user_id})")
    return 0


def _list_users(store: UserStore, args: argparse.Namespace) -> int:
    for user in store.list_users():
        org = user.organization_id if user.organization_id is not None else "-"
        print(f"  {user.id:>5}  {user.username:<24} {user.role.value:<7} org={org}")
    return 0


def _list_orgs(store: UserStore, args: argparse.Namespace) -> int:
    for org in store.list_organizations():
        print(f"  {org.id:>5}  {org.name}")
    return 0


def _update_user(store: UserStore, args: argparse.Namespace) -> int:
    fields: dict = {}
    if args.role is not None:
        fields["role"] = Role(args.role)
    if args.clear_org:
        fields["organization_id"] = None
    elif args.org_id is not None:
        if store.get_organization(args.org_id) is None:
            print(f"  [!] Organization {args.org_id} does not exist.")
            return 1
        fields["organization_id"] = args.org_id
    if not fields:
        print("  [!] Nothing to update: pass --role, --org-id or --clear-org.")
        return 1
    if not store.update_user(args.user_id, **fields):
        print(f"  [!] User {args.user_id} not found.")
        return 1
    print(f"  Updated user {args.user_id}")
    return 0


def _delete_user(store: UserStore, args: argparse.Namespace) -> int:
    if not store.delete_user(args.user_id):
        print(f"  [!] User {args.user_id} not found.")
        return 1
    print(f"  Deleted user {args.user_id} and their tasks")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="TaskGuard administration")
    parser.add_argument("--db-url", default=None, help="SQLAlchemy database URL (default: DATABASE_URL setting)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("create-org", help="Create an organization")
    p.add_argument("name")
    p.set_defaults(handler=_create_org)

    p = sub.add_parser("create-user", help="Create a user")
    p.add_argument("username")
    p.add_argument("--role", choices=[r.value for r in Role], default=Role.VIEWER.value)
    p.add_argument("--org-id", type=int, default=None)
    p.add_argument("--password", default=None)
    p.set_defaults(handler=_create_user)

    p = sub.add_parser("list-users", help="List users")
    p.set_defaults(handler=_list_users)

    p = sub.add_parser("list-orgs", help="List organizations")
    p.set_defaults(handler=_list_orgs)

    p = sub.add_parser("update-user", help="Change a user's role or organization")
    p.add_argument("user_id", type=int)
    p.add_argument("--role", choices=[r.value for r in Role], default=None)
    org = p.add_mutually_exclusive_group()
    org.add_argument("--org-id", type=int, default=None)
    org.add_argument("--clear-org", action="store_true", help="Detach the user from their organization")
    p.set_defaults(handler=_update_user)

    p = sub.add_parser("delete-user", help="Delete a user and cascade-delete their tasks")
    p.add_argument("user_id", type=int)
    p.set_defaults(handler=_delete_user)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    engine = create_db_engine(args.db_url or get_settings().database_url)
    try:
        return args.handler(UserStore(engine), args)
    finally:
        engine.dispose()


if __name__ == "__main__":
    sys.exit(main())
