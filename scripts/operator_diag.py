"""Operator MCP diagnostics CLI."""

from __future__ import annotations

import argparse
import asyncio
import json
import os
from pathlib import Path

from operator_mcp.agent import build_command
from operator_mcp.api import OperatorApiClient, OperatorApiError, read_endpoint_descriptor, resolve_base_url
from operator_mcp.config import OperatorSettings
from operator_mcp.launcher import project_working_directory
from operator_mcp.tickets import LaunchOptions, current_session_token, find_tickets_dir, parse_from_path


def resolve_tickets_dir(settings: OperatorSettings, explicit: str | None = None) -> Path | None:
    if explicit:
        return Path(explicit)
    return settings.tickets_dir or find_tickets_dir(Path.cwd())


def load_metadata(path: str):
    metadata = parse_from_path(path)
    if metadata is None:
        print(f"No ticket metadata in {path}")
        raise SystemExit(1)
    return metadata


def cmd_endpoint(args: argparse.Namespace) -> None:
    settings = OperatorSettings()
    tickets_dir = resolve_tickets_dir(settings, args.tickets_dir)
    descriptor = read_endpoint_descriptor(tickets_dir)
    payload = {
        "tickets_dir": str(tickets_dir) if tickets_dir else None,
        "base_url": resolve_base_url(tickets_dir, default_url=settings.api_url),
        "descriptor": descriptor.model_dump() if descriptor else None,
    }
    print(json.dumps(payload, indent=2))


def cmd_metadata(args: argparse.Namespace) -> None:
    metadata = load_metadata(args.ticket)
    payload = metadata.model_dump()
    payload["resume_token"] = current_session_token(metadata)
    print(json.dumps(payload, indent=2))


def cmd_command(args: argparse.Namespace) -> None:
    settings = OperatorSettings()
    metadata = load_metadata(args.ticket)
    options = LaunchOptions(
        model=args.model or settings.default_model,
        yolo_mode=args.yolo,
        resume_session=args.resume,
    )
    token = current_session_token(metadata) if options.resume_session else None
    ticket_path = Path(args.ticket).resolve()
    tickets_dir = settings.tickets_dir or find_tickets_dir(ticket_path.parent)
    working_dir = project_working_directory(metadata, ticket_path, tickets_dir)
    relative = os.path.relpath(ticket_path, working_dir)
    print(build_command(relative, metadata, options, token, binary=settings.agent_binary))


def cmd_health(args: argparse.Namespace) -> None:
    settings = OperatorSettings()
    tickets_dir = resolve_tickets_dir(settings, args.tickets_dir)
    base_url = resolve_base_url(tickets_dir, default_url=settings.api_url)
    client = OperatorApiClient(base_url, probe_timeout=settings.probe_timeout)
    try:
        health = asyncio.run(client.health())
    except OperatorApiError as exc:
        print(f"Operator unavailable at {base_url}: {exc}")
        raise SystemExit(1)
    print(json.dumps({"base_url": base_url, **health.model_dump()}, indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Operator MCP diagnostics")
    sub = parser.add_subparsers(dest="cmd")

    p_endpoint = sub.add_parser("endpoint", help="Show the resolved Operator API endpoint")
    p_endpoint.add_argument("--tickets-dir")
    p_endpoint.set_defaults(func=cmd_endpoint)

    p_metadata = sub.add_parser("metadata", help="Print parsed ticket frontmatter")
    p_metadata.add_argument("ticket")
    p_metadata.set_defaults(func=cmd_metadata)

    p_command = sub.add_parser("command", help="Print the locally synthesized agent command")
    p_command.add_argument("ticket")
    p_command.add_argument("--model")
    p_command.add_argument("--yolo", action="store_true", help="Skip permission prompts")
    p_command.add_argument("--resume", action="store_true", help="Resume the recorded session")
    p_command.set_defaults(func=cmd_command)

    p_health = sub.add_parser("health", help="Probe the Operator API")
    p_health.add_argument("--tickets-dir")
    p_health.set_defaults(func=cmd_health)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()
