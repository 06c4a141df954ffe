"""FastMCP server bootstrap for Operator."""

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from fastmcp import FastMCP

from . import __version__
from .api import OperatorApiClient, read_endpoint_descriptor, resolve_base_url
from .config import OperatorSettings, get_settings
from .launcher import LaunchOrchestrator
from .profiles import ProfileLoadError, ProfileLoader, default_profiles
from .terminals import TerminalHost, TerminalManager, TmuxHost
from .tickets import find_tickets_dir
from .tools import register_tools


def configure_logging(level: str) -> None:
    """Configure root logging for the Operator server."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def create_server(
    settings: Optional[OperatorSettings] = None,
    host: TerminalHost | None = None,
) -> FastMCP:
    """Instantiate the FastMCP server with the session orchestrator wired in."""

    settings = settings or get_settings()
    tickets_dir = settings.tickets_dir or find_tickets_dir(Path.cwd())

    host_metadata: dict[str, Any] = {"kind": "custom", "available": True, "error": None}
    if host is None:
        tmux = TmuxHost(settings.tmux_path)
        host_metadata = {
            "kind": "tmux",
            "available": tmux.available,
            "executable": str(tmux.executable) if tmux.executable else None,
            "error": None if tmux.available else "tmux executable not found",
        }
        host = tmux

    terminals = TerminalManager(host)
    profile_loader = ProfileLoader(
        settings.profile_paths,
        defaults=default_profiles(settings.default_model),
    )

    def _client_factory(base_url: str) -> OperatorApiClient:
        return OperatorApiClient(
            base_url,
            timeout=settings.request_timeout,
            probe_timeout=settings.probe_timeout,
        )

    orchestrator = LaunchOrchestrator(
        terminals,
        tickets_dir=tickets_dir,
        api_url=settings.api_url,
        client_factory=_client_factory,
        agent_binary=settings.agent_binary,
    )

    server = FastMCP(
        name="Operator MCP",
        instructions=(
            "Operator MCP starts coding agents for tickets in terminal sessions. It delegates "
            "to a running Operator API when one is reachable and otherwise builds the agent "
            "command from the ticket itself. Use the tools to launch, inspect, and close sessions."
        ),
    )

    handles = register_tools(
        server,
        orchestrator=orchestrator,
        terminals=terminals,
        profiles=profile_loader,
        settings=settings,
    )

    def status_resource() -> str:
        """Return a JSON string summarizing runtime state."""

        try:
            profile_ids = sorted(profile_loader.load_all().keys())
            profile_error: str | None = None
        except ProfileLoadError as exc:
            profile_ids = []
            profile_error = str(exc)

        sessions = [state.as_dict() for state in terminals.list()]
        activity_counts: dict[str, int] = {}
        for session in sessions:
            activity_counts[session["activity"]] = activity_counts.get(session["activity"], 0) + 1

        descriptor = read_endpoint_descriptor(tickets_dir)
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "server_version": __version__,
            "log_level": settings.log_level,
            "tickets_dir": str(tickets_dir) if tickets_dir else None,
            "endpoint": {
                "base_url": resolve_base_url(tickets_dir, default_url=settings.api_url),
                "discovered": descriptor is not None,
                "operator_version": descriptor.version if descriptor else None,
            },
            "host": host_metadata,
            "profiles": {
                "count": len(profile_ids),
                "ids": profile_ids,
                "error": profile_error,
            },
            "sessions": {
                "count": len(sessions),
                "by_activity": activity_counts,
                "items": sessions,
            },
        }
        return json.dumps(payload)

    server.resource(
        "resource://operator/status",
        name="operator_status",
        description="Provides the current runtime status for the Operator MCP server.",
        mime_type="application/json",
        tags={"status", "health"},
    )(status_resource)

    setattr(server, "terminals", terminals)
    setattr(server, "orchestrator", orchestrator)
    setattr(server, "profile_loader", profile_loader)
    setattr(server, "host_metadata", host_metadata)
    setattr(server, "tool_handles", handles)
    setattr(server, "status_snapshot", status_resource)
    return server


def main() -> None:
    """Entry point for running the Operator MCP server via CLI."""

    settings = get_settings()
    configure_logging(settings.log_level)

    server = create_server(settings)
    logging.getLogger(__name__).info(
        "Launching Operator MCP server",
        extra={
            "version": __version__,
            "log_level": settings.log_level,
            "tmux_available": getattr(server, "host_metadata", {}).get("available"),
        },
    )
    try:
        server.run()
    finally:
        asyncio.run(getattr(server, "terminals").dispose_all())


if __name__ == "__main__":
    main()
