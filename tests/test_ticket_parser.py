from __future__ import annotations

from pathlib import Path
import textwrap

import pytest

from operator_mcp.tickets import (
    TicketMetadata,
    TicketStatus,
    TicketType,
    current_session_token,
    extract_ticket_type,
    find_tickets_dir,
    is_ticket_file,
    parse,
    parse_from_path,
    ticket_from_path,
)


SAMPLE = textwrap.dedent(
    """
    ---
    id: FEAT-123
    status: in-progress
    step: review
    priority: P1
    project: operator
    worktree_path: /work/feat-123
    branch: feat/feat-123
    sessions:
      initial: abc123
      review: def456
    ---

    # Add launch profiles

    Body text: with a colon that is not frontmatter.
    """
).lstrip()


def write_ticket(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_parse_reads_scalars_and_sessions() -> None:
    metadata = parse(SAMPLE)

    assert metadata is not None
    assert metadata.id == "FEAT-123"
    assert metadata.status == "in-progress"
    assert metadata.step == "review"
    assert metadata.priority == "P1"
    assert metadata.project == "operator"
    assert metadata.worktree_path == "/work/feat-123"
    assert metadata.branch == "feat/feat-123"
    assert metadata.sessions == {"initial": "abc123", "review": "def456"}
    assert "Body text" not in metadata.entries


def test_parse_builds_metadata_from_generated_block() -> None:
    scalars = {"id": "FIX-9", "status": "queue", "step": "plan", "priority": "P3", "project": "core"}
    sessions = {"initial": "tok-1", "plan": "tok-2"}

    lines = ["---"]
    lines += [f"{key}: {value}" for key, value in scalars.items()]
    lines.append("sessions:")
    lines += [f"  {key}: {value}" for key, value in sessions.items()]
    lines.append("---")

    metadata = parse("\n".join(lines))

    assert metadata is not None
    for key, value in scalars.items():
        assert getattr(metadata, key) == value
    assert metadata.sessions == sessions
    assert list(metadata.entries) == list(scalars)


def test_value_keeps_text_after_first_colon() -> None:
    metadata = parse("---\nid: TASK-1\nworktree_path: http://host:8080/path\n---\n")

    assert metadata is not None
    assert metadata.worktree_path == "http://host:8080/path"


def test_missing_fields_take_defaults() -> None:
    metadata = parse("---\nid: TASK-2\n---\n")

    assert metadata == TicketMetadata(id="TASK-2", entries={"id": "TASK-2"})
    assert metadata.status is None
    assert metadata.sessions is None


@pytest.mark.parametrize(
    "text",
    [
        "",
        "no frontmatter here\n",
        "---\nid: FEAT-1\n",
        "---\n---\n",
        "---\n\n   \n---\n",
        "\n---\nid: FEAT-1\n---\n",
    ],
)
def test_parse_without_block_returns_none(text: str) -> None:
    assert parse(text) is None


def test_parse_accepts_byte_order_mark_and_long_delimiters() -> None:
    metadata = parse("\ufeff-----\nid: SPIKE-4\n-----\n")

    assert metadata is not None
    assert metadata.id == "SPIKE-4"


def test_indented_lines_outside_sessions_are_ignored() -> None:
    text = "---\nid: INV-5\nnotes:\n  nested: value\nsessions:\n  initial: aaa\nstep: initial\n  stray: bbb\n---\n"
    metadata = parse(text)

    assert metadata is not None
    assert metadata.sessions == {"initial": "aaa"}
    assert metadata.step == "initial"
    assert "nested" not in metadata.entries


def test_parse_from_path_reads_file(tmp_path: Path) -> None:
    ticket = write_ticket(tmp_path / "FEAT-123.md", SAMPLE)

    metadata = parse_from_path(ticket)

    assert metadata is not None
    assert metadata.id == "FEAT-123"


def test_parse_from_path_unreadable_returns_none(tmp_path: Path) -> None:
    assert parse_from_path(tmp_path / "missing.md") is None
    assert parse_from_path(tmp_path) is None


def test_session_token_uses_initial_when_step_empty() -> None:
    metadata = TicketMetadata(sessions={"initial": "A"}, step="")
    assert current_session_token(metadata) == "A"


def test_session_token_prefers_current_step() -> None:
    metadata = TicketMetadata(sessions={"initial": "A", "review": "B"}, step="review")
    assert current_session_token(metadata) == "B"


def test_session_token_falls_back_to_initial_for_unknown_step() -> None:
    metadata = TicketMetadata(sessions={"initial": "A"}, step="deploy")
    assert current_session_token(metadata) == "A"


def test_session_token_absent_without_sessions() -> None:
    assert current_session_token(TicketMetadata()) is None
    assert current_session_token(TicketMetadata(sessions={})) is None
    assert current_session_token(TicketMetadata(sessions={"review": "B"}, step="plan")) is None


@pytest.mark.parametrize(
    ("ticket_id", "expected"),
    [
        ("FEAT-1", TicketType.FEAT),
        ("fix-22", TicketType.FIX),
        ("SPIKE-3", TicketType.SPIKE),
        ("INV-4", TicketType.INV),
        ("CHORE-5", TicketType.TASK),
    ],
)
def test_extract_ticket_type(ticket_id: str, expected: TicketType) -> None:
    assert extract_ticket_type(ticket_id) is expected


def test_is_ticket_file() -> None:
    assert is_ticket_file("/repo/.tickets/queue/FEAT-1.md")
    assert is_ticket_file("/repo/.tickets/in-progress/FIX-2.md")
    assert not is_ticket_file("/repo/.tickets/completed/FIX-2.md")
    assert not is_ticket_file("/repo/.tickets/queue/FEAT-1.txt")
    assert not is_ticket_file("/repo/docs/queue/FEAT-1.md")


def test_find_tickets_dir_walks_up(tmp_path: Path) -> None:
    tickets = tmp_path / ".tickets"
    nested = tmp_path / "src" / "pkg"
    tickets.mkdir()
    nested.mkdir(parents=True)

    assert find_tickets_dir(nested) == tickets.resolve()


def test_ticket_from_path(tmp_path: Path) -> None:
    ticket_file = write_ticket(tmp_path / ".tickets" / "in-progress" / "FEAT-123.md", SAMPLE)

    ticket = ticket_from_path(ticket_file)

    assert ticket is not None
    assert ticket.id == "FEAT-123"
    assert ticket.type is TicketType.FEAT
    assert ticket.status is TicketStatus.IN_PROGRESS
    assert ticket.title == "FEAT-123"
    assert ticket.file_path == ticket_file.resolve()


def test_ticket_from_path_requires_id(tmp_path: Path) -> None:
    ticket_file = write_ticket(tmp_path / "nameless.md", "---\nstatus: queue\n---\n")
    assert ticket_from_path(ticket_file) is None
