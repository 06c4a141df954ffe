"""Build agent CLI invocations for tickets."""

from __future__ import annotations

import re
import shlex

from ..tickets.models import LaunchOptions, TicketMetadata

SESSION_PREFIX = "op-"
DEFAULT_BINARY = "claude"

_UNSAFE_SESSION_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def build_session_name(ticket_id: str) -> str:
    """Return the terminal session name for a ticket id.

    Every character outside ``[A-Za-z0-9_-]`` becomes ``-`` so the name is
    safe for tmux targets and shell arguments alike.
    """

    return SESSION_PREFIX + _UNSAFE_SESSION_CHARS.sub("-", ticket_id)


def build_command(
    relative_ticket_path: str,
    metadata: TicketMetadata,
    options: LaunchOptions,
    resume_token: str | None = None,
    *,
    binary: str = DEFAULT_BINARY,
) -> str:
    """Build the shell command that starts an agent on a ticket."""

    parts: list[str] = [binary, "--model", shlex.quote(options.model)]

    if options.resume_session and resume_token:
        parts.extend(["--resume", shlex.quote(resume_token)])

    if options.yolo_mode:
        parts.append("--dangerously-skip-permissions")

    instruction = f"Read and work on the ticket at {relative_ticket_path}"
    parts.extend(["--print", shlex.quote(instruction)])

    return " ".join(parts)


def default_launch_options(model: str | None = None) -> LaunchOptions:
    if model:
        return LaunchOptions(model=model)
    return LaunchOptions()


__all__ = ["SESSION_PREFIX", "build_command", "build_session_name", "default_launch_options"]
