"""Terminal lifecycle management keyed by session name."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Hashable, Mapping

from .host import HostEvent, TerminalHost, TerminalNotFoundError, classify_session

logger = logging.getLogger(__name__)

SESSION_ENV_VAR = "OPERATOR_SESSION"


class ActivityState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    UNKNOWN = "unknown"


# (current, event) -> next; CLOSED is handled separately because it removes the record.
_TRANSITIONS: dict[tuple[ActivityState, HostEvent], ActivityState] = {
    (ActivityState.UNKNOWN, HostEvent.EXECUTION_STARTED): ActivityState.RUNNING,
    (ActivityState.IDLE, HostEvent.EXECUTION_STARTED): ActivityState.RUNNING,
    (ActivityState.RUNNING, HostEvent.EXECUTION_STARTED): ActivityState.RUNNING,
    (ActivityState.UNKNOWN, HostEvent.EXECUTION_ENDED): ActivityState.IDLE,
    (ActivityState.IDLE, HostEvent.EXECUTION_ENDED): ActivityState.IDLE,
    (ActivityState.RUNNING, HostEvent.EXECUTION_ENDED): ActivityState.IDLE,
}


def next_activity(current: ActivityState, event: HostEvent) -> ActivityState | None:
    """Return the state after ``event``, or ``None`` when the record must be dropped."""

    if event is HostEvent.CLOSED:
        return None
    return _TRANSITIONS.get((current, event), current)


@dataclass(slots=True)
class TerminalRecord:
    name: str
    handle: Hashable
    activity: ActivityState
    created_at: datetime
    working_dir: str | None = None
    last_command: str | None = None


@dataclass(frozen=True, slots=True)
class TerminalState:
    """Snapshot of a tracked terminal returned by :meth:`TerminalManager.list`."""

    name: str
    activity: ActivityState
    created_at: datetime

    def as_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "activity": self.activity.value,
            "created_at": self.created_at.isoformat(),
        }


class TerminalManager:
    """Owns the mapping from session name to host terminal.

    A session name maps to at most one live handle. Creating a session that
    already exists disposes the previous handle first, which keeps repeated
    launches for the same ticket safe without locking.
    """

    def __init__(
        self,
        host: TerminalHost,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._host = host
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._records: dict[str, TerminalRecord] = {}
        self._names_by_handle: dict[Hashable, str] = {}
        self._unsubscribe: Callable[[], None] | None = host.subscribe(self._on_host_event)

    @property
    def host(self) -> TerminalHost:
        return self._host

    async def create(
        self,
        name: str,
        working_dir: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> Hashable:
        """Allocate a terminal for ``name``, replacing any existing one.

        Raises :class:`HostUnavailableError` if the host cannot allocate it;
        no record is kept in that case.
        """

        if name in self._records:
            logger.info("Replacing existing terminal", extra={"session": name})
            await self.kill(name)

        terminal_env = {**(env or {}), SESSION_ENV_VAR: name}
        handle = await self._host.create_handle(name, working_dir, terminal_env, classify_session(name))

        self._records[name] = TerminalRecord(
            name=name,
            handle=handle,
            activity=ActivityState.IDLE,
            created_at=self._clock(),
            working_dir=working_dir,
        )
        self._names_by_handle[handle] = name
        logger.debug("Created terminal", extra={"session": name, "cwd": working_dir})
        return handle

    async def send(self, name: str, command: str) -> None:
        record = self._require(name)
        await self._host.send_text(record.handle, command)
        record.last_command = command

    async def show(self, name: str) -> None:
        record = self._require(name)
        await self._host.reveal(record.handle, False)

    async def focus(self, name: str) -> None:
        record = self._require(name)
        await self._host.reveal(record.handle, True)

    async def kill(self, name: str) -> None:
        record = self._forget(name)
        if record is None:
            return
        await self._host.dispose(record.handle)
        logger.debug("Killed terminal", extra={"session": name})

    def exists(self, name: str) -> bool:
        return name in self._records

    def activity_of(self, name: str) -> ActivityState:
        record = self._records.get(name)
        return record.activity if record is not None else ActivityState.UNKNOWN

    def record(self, name: str) -> TerminalRecord | None:
        return self._records.get(name)

    def list(self) -> list[TerminalState]:
        return [
            TerminalState(name=record.name, activity=record.activity, created_at=record.created_at)
            for _, record in sorted(self._records.items())
        ]

    def apply_event(self, name: str, event: HostEvent) -> ActivityState:
        """Apply a host event to the named session and return its new state."""

        record = self._records.get(name)
        if record is None:
            return ActivityState.UNKNOWN

        state = next_activity(record.activity, event)
        if state is None:
            self._forget(name)
            logger.info("Terminal closed by host", extra={"session": name})
            return ActivityState.UNKNOWN

        record.activity = state
        return state

    async def dispose_all(self) -> None:
        for name in list(self._records):
            await self.kill(name)
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_host_event(self, handle: Hashable, event: HostEvent) -> None:
        name = self._names_by_handle.get(handle)
        if name is None:
            return
        self.apply_event(name, event)

    def _require(self, name: str) -> TerminalRecord:
        record = self._records.get(name)
        if record is None:
            raise TerminalNotFoundError(name)
        return record

    def _forget(self, name: str) -> TerminalRecord | None:
        record = self._records.pop(name, None)
        if record is not None:
            self._names_by_handle.pop(record.handle, None)
        return record


__all__ = [
    "ActivityState",
    "SESSION_ENV_VAR",
    "TerminalManager",
    "TerminalRecord",
    "TerminalState",
    "next_activity",
]
