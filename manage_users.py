from __future__ import annotations

import argparse

from agentdiscoveries import agent_store, user_store
from agentdiscoveries.main import init_db
from agentdiscoveries.models import User


def print_user(user: User) -> None:
    roles = [name for name, enabled in (("admin", user.is_admin), ("user", user.is_user)) if enabled]
    agent = "-"
    if user.agent_id is not None:
        record = agent_store.get_agent(user.agent_id)
        agent = f"{record.call_sign} (#{user.agent_id})" if record else f"#{user.agent_id} (missing)"
    print(f"{user.user_id:>3} {user.username:<16} {'/'.join(roles) or '-':<10} {agent}")


def cmd_list(ns: argparse.Namespace) -> None:
    users = user_store.list_users()
    if not users:
        print("(no users)")
        return
    for user in users:
        print_user(user)


def cmd_add(ns: argparse.Namespace) -> None:
    record = user_store.create_user(
        username=ns.username,
        password=ns.password,
        agent_id=ns.agent_id,
        is_admin=ns.admin,
        is_user=not ns.no_user_role,
    )
    print("Created user:")
    print_user(record)


def cmd_update(ns: argparse.Namespace) -> None:
    user = user_store.get_user_by_username(ns.username)
    if not user:
        raise SystemExit(f"User '{ns.username}' not found")
    updates: dict[str, object] = {}
    if ns.agent_id is not None:
        updates["agent_id"] = ns.agent_id
    if ns.clear_agent:
        updates["agent_id"] = None
    if ns.admin is not None:
        updates["is_admin"] = ns.admin
    if ns.user_role is not None:
        updates["is_user"] = ns.user_role
    if updates:
        user_store.update_user(user.user_id, **updates)
        print("Updated user")
    else:
        print("Nothing to update")


def cmd_set_password(ns: argparse.Namespace) -> None:
    user = user_store.get_user_by_username(ns.username)
    if not user:
        raise SystemExit(f"User '{ns.username}' not found")
    user_store.set_password(user.user_id, ns.password)
    print(f"Password updated for '{ns.username}'")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage Agent Discoveries users")
    sub = parser.add_subparsers(dest="command", required=True)

    p_add = sub.add_parser("add", help="Create a new user")
    p_add.add_argument("username")
    p_add.add_argument("password")
    p_add.add_argument("--agent-id", dest="agent_id", type=int)
    p_add.add_argument("--admin", action="store_true")
    p_add.add_argument("--no-user-role", dest="no_user_role", action="store_true")
    p_add.set_defaults(func=cmd_add)

    p_list = sub.add_parser("list", help="List users")
    p_list.set_defaults(func=cmd_list)

    p_update = sub.add_parser("update", help="Update a user's roles or agent link")
    p_update.add_argument("username")
    p_update.add_argument("--agent-id", dest="agent_id", type=int)
    p_update.add_argument("--clear-agent", action="store_true")
    p_update.add_argument("--admin", dest="admin", action="store_true")
    p_update.add_argument("--no-admin", dest="admin", action="store_false")
    p_update.add_argument("--user-role", dest="user_role", action="store_true")
    p_update.add_argument("--no-user-role", dest="user_role", action="store_false")
    p_update.set_defaults(func=cmd_update, admin=None, user_role=None, agent_id=None)

    p_pw = sub.add_parser("set-password", help="Reset a user password")
    p_pw.add_argument("username")
    p_pw.add_argument("password")
    p_pw.set_defaults(func=cmd_set_password)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    init_db()
    args.func(args)


if __name__ == "__main__":
    main()
