from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from operator_mcp.terminals import (
    ActivityState,
    FakeTerminalHost,
    HostEvent,
    HostUnavailableError,
    TerminalManager,
    TerminalNotFoundError,
    classify_session,
    next_activity,
)
from operator_mcp.terminals.manager import SESSION_ENV_VAR


FIXED_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


def make_manager(**kwargs) -> tuple[TerminalManager, FakeTerminalHost]:
    host = FakeTerminalHost(**kwargs)
    return TerminalManager(host, clock=lambda: FIXED_TIME), host


def test_create_twice_leaves_single_live_handle() -> None:
    manager, host = make_manager()

    async def scenario() -> None:
        await manager.create("op-FEAT-1", "/w")
        await manager.create("op-FEAT-1", "/w2")

    asyncio.run(scenario())

    assert [state.name for state in manager.list()] == ["op-FEAT-1"]
    assert len(host.live) == 1
    assert host.live[0].cwd == "/w2"
    assert host.calls == [("create", "op-FEAT-1"), ("dispose", "op-FEAT-1"), ("create", "op-FEAT-1")]


def test_create_sets_environment_and_style() -> None:
    manager, host = make_manager()

    asyncio.run(manager.create("op-FIX-2", "/repo", {"EXTRA": "1"}))

    terminal = host.live[0]
    assert terminal.env == {"EXTRA": "1", SESSION_ENV_VAR: "op-FIX-2"}
    assert terminal.style == classify_session("op-FIX-2")
    assert terminal.style.color == "red"
    state = manager.list()[0]
    assert state.activity is ActivityState.IDLE
    assert state.created_at == FIXED_TIME


def test_kill_missing_session_is_noop() -> None:
    manager, host = make_manager()
    asyncio.run(manager.create("op-A", None))
    before = manager.list()

    asyncio.run(manager.kill("op-missing"))

    assert manager.list() == before
    assert ("dispose", "op-missing") not in host.calls


def test_kill_disposes_and_forgets() -> None:
    manager, host = make_manager()
    asyncio.run(manager.create("op-A", None))

    asyncio.run(manager.kill("op-A"))
    asyncio.run(manager.kill("op-A"))

    assert manager.list() == []
    assert not manager.exists("op-A")
    assert host.calls.count(("dispose", "op-A")) == 1


def test_send_show_focus_reach_handle() -> None:
    manager, host = make_manager()

    async def scenario() -> None:
        await manager.create("op-TASK-3", "/w")
        await manager.send("op-TASK-3", "echo hi")
        await manager.show("op-TASK-3")
        await manager.focus("op-TASK-3")

    asyncio.run(scenario())

    terminal = host.live[0]
    assert terminal.sent == ["echo hi"]
    assert terminal.reveals == [False, True]
    record = manager.record("op-TASK-3")
    assert record is not None and record.last_command == "echo hi"


@pytest.mark.parametrize("operation", ["send", "show", "focus"])
def test_operations_on_untracked_session_raise(operation: str) -> None:
    manager, _ = make_manager()

    async def scenario() -> None:
        if operation == "send":
            await manager.send("op-nope", "ls")
        else:
            await getattr(manager, operation)("op-nope")

    with pytest.raises(TerminalNotFoundError) as excinfo:
        asyncio.run(scenario())
    assert excinfo.value.name == "op-nope"


def test_host_failure_leaves_no_record() -> None:
    manager, host = make_manager(fail_create=True)

    with pytest.raises(HostUnavailableError):
        asyncio.run(manager.create("op-A", "/w"))

    assert manager.list() == []
    assert host.calls == [("create", "op-A")]


def test_host_events_drive_activity() -> None:
    manager, host = make_manager()
    handle = asyncio.run(manager.create("op-A", None))

    assert manager.activity_of("op-A") is ActivityState.IDLE
    host.emit(handle, HostEvent.EXECUTION_STARTED)
    assert manager.activity_of("op-A") is ActivityState.RUNNING
    host.emit(handle, HostEvent.EXECUTION_ENDED)
    assert manager.activity_of("op-A") is ActivityState.IDLE
    host.emit(handle, HostEvent.CLOSED)
    assert not manager.exists("op-A")
    assert manager.activity_of("op-A") is ActivityState.UNKNOWN


def test_events_for_replaced_handle_are_ignored() -> None:
    manager, host = make_manager()
    old = asyncio.run(manager.create("op-A", None))
    asyncio.run(manager.create("op-A", None))

    host.emit(old, HostEvent.CLOSED)

    assert manager.exists("op-A")


def test_apply_event_for_unknown_session() -> None:
    manager, _ = make_manager()
    assert manager.apply_event("op-ghost", HostEvent.EXECUTION_STARTED) is ActivityState.UNKNOWN


@pytest.mark.parametrize(
    ("current", "event", "expected"),
    [
        (ActivityState.UNKNOWN, HostEvent.EXECUTION_STARTED, ActivityState.RUNNING),
        (ActivityState.IDLE, HostEvent.EXECUTION_STARTED, ActivityState.RUNNING),
        (ActivityState.RUNNING, HostEvent.EXECUTION_ENDED, ActivityState.IDLE),
        (ActivityState.UNKNOWN, HostEvent.EXECUTION_ENDED, ActivityState.IDLE),
        (ActivityState.RUNNING, HostEvent.CLOSED, None),
    ],
)
def test_transition_table(current, event, expected) -> None:
    assert next_activity(current, event) == expected


def test_list_is_sorted_by_name() -> None:
    manager, _ = make_manager()

    async def scenario() -> None:
        for name in ("op-c", "op-a", "op-b"):
            await manager.create(name, None)

    asyncio.run(scenario())

    assert [state.name for state in manager.list()] == ["op-a", "op-b", "op-c"]
    assert manager.list()[0].as_dict() == {
        "name": "op-a",
        "activity": "idle",
        "created_at": FIXED_TIME.isoformat(),
    }


def test_dispose_all_kills_everything_and_unsubscribes() -> None:
    manager, host = make_manager()

    async def scenario() -> None:
        await manager.create("op-a", None)
        await manager.create("op-b", None)
        await manager.dispose_all()

    asyncio.run(scenario())

    assert manager.list() == []
    assert host.live == []
    assert host.listener_count == 0


def test_managers_do_not_share_state() -> None:
    first, _ = make_manager()
    second, _ = make_manager()

    asyncio.run(first.create("op-a", None))

    assert first.exists("op-a")
    assert not second.exists("op-a")
