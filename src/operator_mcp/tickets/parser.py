"""Frontmatter parsing for ticket documents.

Ticket files start with a block of ``key: value`` lines fenced by lines of
dashes. Only a handful of scalar keys matter to the launcher, plus an
indented ``sessions`` block mapping workflow steps to agent resume tokens::

    ---
    id: FEAT-123
    status: in-progress
    step: review
    sessions:
      initial: abc123
      review: def456
    ---
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from .models import TicketInfo, TicketMetadata, TicketStatus, TicketType

logger = logging.getLogger(__name__)

_DELIMITER = re.compile(r"^-{3,}\s*$")
_SCALAR_KEYS = {
    "id",
    "status",
    "step",
    "priority",
    "project",
    "worktree_path",
    "branch",
    "working_directory",
}
_SESSIONS_KEY = "sessions"
_TICKET_STATUS_DIRS = ("queue", "in-progress")


def _split_pair(line: str) -> tuple[str, str] | None:
    key, sep, value = line.partition(":")
    if not sep:
        return None
    key = key.strip()
    if not key:
        return None
    return key, value.strip()


def _frontmatter_body(document_text: str) -> list[str] | None:
    lines = document_text.lstrip("\ufeff").splitlines()
    if not lines or not _DELIMITER.match(lines[0]):
        return None
    for index in range(1, len(lines)):
        if _DELIMITER.match(lines[index]):
            return lines[1:index]
    return None


def parse(document_text: str) -> TicketMetadata | None:
    """Parse the leading frontmatter block of a ticket document.

    Returns ``None`` when the document has no block or the block is empty.
    """

    body = _frontmatter_body(document_text)
    if body is None or not any(line.strip() for line in body):
        return None

    values: dict[str, str] = {}
    entries: dict[str, str] = {}
    sessions: dict[str, str] | None = None
    in_sessions = False

    for line in body:
        if not line.strip():
            continue

        if line[0] in (" ", "\t"):
            if in_sessions and sessions is not None:
                pair = _split_pair(line)
                if pair is not None:
                    sessions[pair[0]] = pair[1]
            continue

        in_sessions = False
        pair = _split_pair(line)
        if pair is None:
            continue

        key, value = pair
        if key == _SESSIONS_KEY:
            in_sessions = True
            sessions = {}
            continue

        entries[key] = value
        if key in _SCALAR_KEYS:
            values[key] = value

    metadata = TicketMetadata(
        id=values.get("id", ""),
        status=values.get("status"),
        step=values.get("step", ""),
        priority=values.get("priority", ""),
        project=values.get("project", ""),
        worktree_path=values.get("worktree_path") or None,
        branch=values.get("branch") or None,
        working_directory=values.get("working_directory") or None,
        sessions=sessions,
        entries=entries,
    )
    if metadata.status is None:
        logger.debug("Ticket metadata has no status", extra={"ticket_id": metadata.id})
    return metadata


def parse_from_path(path: str | Path) -> TicketMetadata | None:
    """Read a ticket file and parse it; unreadable files yield ``None``."""

    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("Unable to read ticket file", extra={"path": str(path), "error": str(exc)})
        return None
    return parse(text)


def current_session_token(metadata: TicketMetadata) -> str | None:
    """Return the resume token for the step in progress, else the initial one."""

    if not metadata.sessions:
        return None
    if metadata.step and metadata.step in metadata.sessions:
        return metadata.sessions[metadata.step]
    return metadata.sessions.get("initial")


def extract_ticket_type(ticket_id: str) -> TicketType:
    prefix = ticket_id.strip().split("-", 1)[0].upper()
    try:
        return TicketType(prefix)
    except ValueError:
        return TicketType.TASK


def is_ticket_file(path: str | Path) -> bool:
    parts = Path(path).parts
    if Path(path).suffix != ".md" or len(parts) < 3:
        return False
    return parts[-3] == ".tickets" and parts[-2] in _TICKET_STATUS_DIRS


def find_tickets_dir(start: str | Path) -> Path | None:
    """Walk up from ``start`` to the nearest existing ``.tickets`` directory."""

    current = Path(start).expanduser().resolve()
    for candidate in (current, *current.parents):
        tickets = candidate / ".tickets"
        if tickets.is_dir():
            return tickets
    return None


def ticket_from_path(path: str | Path) -> TicketInfo | None:
    """Build a :class:`TicketInfo` for a ticket file using its frontmatter."""

    file_path = Path(path).expanduser().resolve()
    metadata = parse_from_path(file_path)
    if metadata is None or not metadata.id:
        return None

    status = TicketStatus.QUEUE
    if metadata.status in (TicketStatus.IN_PROGRESS.value, TicketStatus.COMPLETED.value):
        status = TicketStatus(metadata.status)

    return TicketInfo(
        id=metadata.id,
        type=extract_ticket_type(metadata.id),
        title=metadata.entries.get("title", file_path.stem),
        status=status,
        file_path=file_path,
    )


__all__ = [
    "current_session_token",
    "extract_ticket_type",
    "find_tickets_dir",
    "is_ticket_file",
    "parse",
    "parse_from_path",
    "ticket_from_path",
]
