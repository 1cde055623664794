"""
Command line entry point.

    orgdesk orgs search --query acme --page-size 20
    orgdesk members add <org-id> <user-sub> "Jane Doe" --role Owner

Results are printed as JSON.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from orgdesk_shared.logging import configure_logging

from .client import ApiError, OrgDeskClient, TokenUnavailable
from .config import ClientConfig, load_config

DEFAULT_CONFIG = "orgdesk.yaml"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="orgdesk", description="OrgDesk organizations API client")
    parser.add_argument(
        "-c", "--config",
        default=None,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG} if present)",
    )
    parser.add_argument("--url", help="API base URL, overrides the config file")
    commands = parser.add_subparsers(dest="group", required=True)

    # orgs
    orgs = commands.add_parser("orgs", help="Organizations").add_subparsers(
        dest="command", required=True
    )
    orgs.add_parser("list", help="List all organizations")
    search = orgs.add_parser("search", help="Search organizations by name")
    search.add_argument("--query", "-q")
    search.add_argument("--sort", choices=["createdAt", "name"], default="createdAt")
    search.add_argument("--order", choices=["asc", "desc"], default="desc")
    search.add_argument("--page", type=int, default=1)
    search.add_argument("--page-size", type=int, default=10)
    get = orgs.add_parser("get", help="Show one organization")
    get.add_argument("org_id")
    orgs.add_parser("mine", help="Organizations you own")
    create = orgs.add_parser("create", help="Create an organization")
    create.add_argument("name")
    rename = orgs.add_parser("rename", help="Rename an organization")
    rename.add_argument("org_id")
    rename.add_argument("name")
    delete = orgs.add_parser("delete", help="Delete an organization and its members")
    delete.add_argument("org_id")

    # members
    members = commands.add_parser("members", help="Organization members").add_subparsers(
        dest="command", required=True
    )
    members_list = members.add_parser("list", help="List members")
    members_list.add_argument("org_id")
    add = members.add_parser("add", help="Add a member")
    add.add_argument("org_id")
    add.add_argument("user_sub")
    add.add_argument("user_name")
    add.add_argument("--role", choices=["Owner", "Member"], default="Member")
    role = members.add_parser("role", help="Change a member's role")
    role.add_argument("org_id")
    role.add_argument("member_id")
    role.add_argument("role", choices=["Owner", "Member"])
    remove = members.add_parser("remove", help="Remove a member")
    remove.add_argument("org_id")
    remove.add_argument("member_id")

    commands.add_parser("me", help="Show the identity claims of your token")
    return parser


def resolve_config(path: str | None) -> ClientConfig:
    """An explicit path must exist; the default file is optional."""
    if path:
        return load_config(path)
    if Path(DEFAULT_CONFIG).exists():
        return load_config(DEFAULT_CONFIG)
    return ClientConfig()


def _jsonable(result: Any) -> Any:
    if isinstance(result, BaseModel):
        return result.model_dump(by_alias=True, mode="json")
    if isinstance(result, list):
        return [_jsonable(item) for item in result]
    return result


async def dispatch(client: OrgDeskClient, args: argparse.Namespace) -> Any:
    if args.group == "me":
        return await client.me()

    if args.group == "orgs":
        if args.command == "list":
            return await client.list_orgs()
        if args.command == "search":
            return await client.search_orgs(
                args.query,
                sort=args.sort,
                order=args.order,
                page=args.page,
                page_size=args.page_size,
            )
        if args.command == "get":
            return await client.get_org(args.org_id)
        if args.command == "mine":
            return await client.my_orgs()
        if args.command == "create":
            return await client.create_org(args.name)
        if args.command == "rename":
            return await client.rename_org(args.org_id, args.name)
        if args.command == "delete":
            await client.delete_org(args.org_id)
            return {"deleted": args.org_id}

    if args.group == "members":
        if args.command == "list":
            return await client.list_members(args.org_id)
        if args.command == "add":
            return await client.add_member(args.org_id, args.user_sub, args.user_name, args.role)
        if args.command == "role":
            await client.change_role(args.org_id, args.member_id, args.role)
            return {"updated": args.member_id, "role": args.role}
        if args.command == "remove":
            await client.remove_member(args.org_id, args.member_id)
            return {"removed": args.member_id}

    raise ValueError(f"Unknown command: {args.group} {getattr(args, 'command', '')}")


async def _run(config: ClientConfig, args: argparse.Namespace) -> Any:
    async with OrgDeskClient.from_config(config) as client:
        return await dispatch(client, args)


def run(argv: list[str] | None = None) -> None:
    """CLI entry point for the client."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = resolve_config(args.config)
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except Exception as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.url:
        config.api.url = args.url

    configure_logging(config.logging.level, config.logging.format, stream=sys.stderr)

    try:
        result = asyncio.run(_run(config, args))
    except ApiError as exc:
        print(f"Error {exc.status}: {exc.message}", file=sys.stderr)
        if exc.problem and exc.problem.errors:
            for field, messages in exc.problem.errors.items():
                print(f"  {field}: {'; '.join(messages)}", file=sys.stderr)
        sys.exit(1)
    except TokenUnavailable as exc:
        print(f"Authentication error: {exc}", file=sys.stderr)
        sys.exit(1)
    except ValidationError as exc:
        print("Invalid input:", file=sys.stderr)
        for error in exc.errors():
            field = ".".join(str(p) for p in error["loc"]) or "input"
            print(f"  {field}: {error['msg']}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(_jsonable(result), indent=2))


if __name__ == "__main__":
    run()
