"""Tool registration for Operator MCP."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal

from fastmcp import Context, FastMCP

from ..config import OperatorSettings
from ..launcher import (
    Aborted,
    ConflictChoice,
    Failed,
    LaunchOrchestrator,
    LaunchOutcome,
    Materialized,
    RelaunchChoice,
    StaticPrompter,
)
from ..profiles import ProfileLoadError, ProfileLoader
from ..terminals import TerminalManager, TerminalNotFoundError
from ..tickets import TicketInfo, ticket_from_path

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ToolHandles:
    launch_ticket: Any
    relaunch_ticket: Any
    list_sessions: Any
    session_activity: Any
    send_command: Any
    show_session: Any
    focus_session: Any
    kill_session: Any
    list_launch_profiles: Any


def _outcome_payload(outcome: LaunchOutcome | None) -> dict[str, Any]:
    if outcome is None:
        return {"status": "cancelled"}
    if isinstance(outcome, Materialized):
        return {
            "status": "materialized",
            "session_name": outcome.session_name,
            "via_remote": outcome.via_remote,
            "working_directory": outcome.working_directory,
            "command": outcome.command,
            "resumed": outcome.resumed,
            "worktree_created": outcome.worktree_created,
        }
    if isinstance(outcome, Aborted):
        return {"status": "aborted", "session_name": outcome.session_name}
    if isinstance(outcome, Failed):
        return {"status": "failed", "session_name": outcome.session_name, "reason": outcome.reason}
    raise TypeError(f"Unexpected launch outcome {outcome!r}")


def register_tools(
    server: FastMCP,
    *,
    orchestrator: LaunchOrchestrator,
    terminals: TerminalManager,
    profiles: ProfileLoader,
    settings: OperatorSettings,
) -> ToolHandles:
    """Register Operator's MCP tools on the server."""

    def _load_ticket(ticket_path: str) -> TicketInfo:
        ticket = ticket_from_path(ticket_path)
        if ticket is None:
            raise ValueError(f"Could not parse ticket ID from '{ticket_path}'")
        return ticket

    def _require_session(session_name: str) -> None:
        if not terminals.exists(session_name):
            raise ValueError(f"Session '{session_name}' not found")

    async def _launch_ticket(
        ticket_path: str,
        *,
        profile_id: str | None = None,
        model: str | None = None,
        yolo_mode: bool | None = None,
        resume_session: bool | None = None,
        on_conflict: Literal["focus", "relaunch", "abort"] = "abort",
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Start an agent session for a ticket file."""

        ticket = _load_ticket(ticket_path)
        try:
            profile = profiles.get(profile_id or "default")
        except ProfileLoadError as exc:
            raise ValueError(str(exc)) from exc

        overrides: dict[str, Any] = {}
        if model:
            overrides["model"] = model
        if yolo_mode is not None:
            overrides["yolo_mode"] = yolo_mode
        if resume_session is not None:
            overrides["resume_session"] = resume_session
        options = profile.to_options().model_copy(update=overrides)

        outcome = await orchestrator.launch(
            ticket,
            options,
            prompter=StaticPrompter(conflict=ConflictChoice(on_conflict)),
        )
        payload = _outcome_payload(outcome)

        _emit_log(
            context,
            "warning" if isinstance(outcome, Failed) else "info",
            "Launch ticket",
            extra={"ticket_id": ticket.id, "profile": profile.id, **payload},
        )
        return {"ticket_id": ticket.id, **payload}

    async def _relaunch_ticket(
        ticket_path: str,
        *,
        resume: bool = True,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Start a missing session again, resuming the recorded agent session when asked."""

        ticket = _load_ticket(ticket_path)
        choice = RelaunchChoice.RESUME if resume else RelaunchChoice.FRESH
        outcome = await orchestrator.offer_relaunch(
            ticket,
            prompter=StaticPrompter(conflict=ConflictChoice.FOCUS, relaunch=choice),
            model=settings.default_model,
        )
        payload = _outcome_payload(outcome)
        _emit_log(context, "info", "Relaunch ticket", extra={"ticket_id": ticket.id, **payload})
        return {"ticket_id": ticket.id, **payload}

    async def _list_sessions(context: Context | None = None) -> list[dict[str, Any]]:
        """List tracked sessions with their activity."""

        refresh = getattr(terminals.host, "refresh", None)
        if callable(refresh):
            await refresh()
        sessions = [state.as_dict() for state in terminals.list()]
        _emit_log(context, "debug", "Listing sessions", extra={"count": len(sessions)})
        return sessions

    def _session_activity(session_name: str, context: Context | None = None) -> dict[str, Any]:
        activity = terminals.activity_of(session_name)
        return {
            "session_name": session_name,
            "exists": terminals.exists(session_name),
            "activity": activity.value,
        }

    async def _send_command(
        session_name: str,
        command: str,
        context: Context | None = None,
    ) -> dict[str, Any]:
        try:
            await terminals.send(session_name, command)
        except TerminalNotFoundError as exc:
            raise ValueError(str(exc)) from exc
        _emit_log(context, "info", "Sent command", extra={"session": session_name})
        return {"session_name": session_name, "sent": True}

    async def _show_session(session_name: str, context: Context | None = None) -> dict[str, Any]:
        _require_session(session_name)
        await terminals.show(session_name)
        return {"session_name": session_name, "shown": True}

    async def _focus_session(session_name: str, context: Context | None = None) -> dict[str, Any]:
        _require_session(session_name)
        await terminals.focus(session_name)
        return {"session_name": session_name, "focused": True}

    async def _kill_session(session_name: str, context: Context | None = None) -> dict[str, Any]:
        existed = terminals.exists(session_name)
        await terminals.kill(session_name)
        _emit_log(
            context,
            "warning",
            "Session killed",
            extra={"session": session_name, "existed": existed},
        )
        return {"session_name": session_name, "killed": existed}

    def _list_launch_profiles(context: Context | None = None) -> list[dict[str, Any]]:
        catalog = [
            {
                "id": profile.id,
                "title": profile.title,
                "description": profile.description,
                "model": profile.model,
                "yolo_mode": profile.yolo_mode,
                "resume_session": profile.resume_session,
                "tags": profile.metadata.get("tags", []),
            }
            for profile in profiles.load_all().values()
        ]
        _emit_log(context, "debug", "Listing launch profiles", extra={"count": len(catalog)})
        return catalog

    tool_launch = server.tool(
        name="launch_ticket",
        description=(
            "Launch a coding agent for a ticket file. Delegates to a running Operator when "
            "reachable, otherwise builds the agent command locally. on_conflict decides what "
            "happens when the ticket already has a session: focus, relaunch, or abort."
        ),
        annotations={
            "safety": {
                "level": "caution",
                "notes": "yolo_mode starts the agent without permission prompts",
            }
        },
    )(_launch_ticket)

    tool_relaunch = server.tool(
        name="relaunch_ticket",
        description="Relaunch a ticket whose session is gone, resuming its recorded agent session if asked.",
    )(_relaunch_ticket)

    tool_list = server.tool(
        name="list_sessions",
        description="List operator terminal sessions with activity state and creation time.",
    )(_list_sessions)

    tool_activity = server.tool(
        name="session_activity",
        description="Report whether a session exists and whether it is idle or running.",
    )(_session_activity)

    tool_send = server.tool(
        name="send_command",
        description="Type a command into a session's terminal and press enter.",
    )(_send_command)

    tool_show = server.tool(
        name="show_session",
        description="Reveal a session's terminal without taking focus.",
    )(_show_session)

    tool_focus = server.tool(
        name="focus_session",
        description="Reveal a session's terminal and give it input focus.",
    )(_focus_session)

    tool_kill = server.tool(
        name="kill_session",
        description="Close a session's terminal. Unknown sessions are ignored.",
    )(_kill_session)

    tool_profiles = server.tool(
        name="list_launch_profiles",
        description="List launch profiles (model, yolo mode, resume) available to launch_ticket.",
    )(_list_launch_profiles)

    return ToolHandles(
        launch_ticket=tool_launch,
        relaunch_ticket=tool_relaunch,
        list_sessions=tool_list,
        session_activity=tool_activity,
        send_command=tool_send,
        show_session=tool_show,
        focus_session=tool_focus,
        kill_session=tool_kill,
        list_launch_profiles=tool_profiles,
    )


def _emit_log(
    context: Context | None,
    level: str,
    message: str,
    *,
    extra: dict[str, Any] | None = None,
) -> None:
    """Best-effort logging that prefers the MCP context logger when available."""

    payload = extra or {}

    if context is not None:
        ctx_logger = getattr(context, "logger", None)
        if ctx_logger is not None:
            log_method = getattr(ctx_logger, level, None)
            if callable(log_method):
                log_method(message, extra=payload)
                return

    fallback = getattr(logger, level, logger.info)
    fallback(message, extra=payload)


__all__ = ["register_tools", "ToolHandles"]
