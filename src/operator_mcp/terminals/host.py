"""Host terminal environment contract."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from itertools import count
from typing import Any, Callable, Hashable, Mapping, Protocol


class HostUnavailableError(RuntimeError):
    """Raised when the host environment cannot allocate a terminal."""


class TerminalNotFoundError(LookupError):
    """Raised when an operation targets a session that is not tracked."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Terminal '{name}' not found")
        self.name = name


class HostEvent(str, Enum):
    EXECUTION_STARTED = "execution_started"
    EXECUTION_ENDED = "execution_ended"
    CLOSED = "closed"


@dataclass(frozen=True, slots=True)
class TerminalStyle:
    color: str
    icon: str


_STYLES: tuple[tuple[str, TerminalStyle], ...] = (
    ("FEAT", TerminalStyle(color="cyan", icon="sparkle")),
    ("FIX", TerminalStyle(color="red", icon="wrench")),
    ("TASK", TerminalStyle(color="green", icon="tasklist")),
    ("SPIKE", TerminalStyle(color="magenta", icon="beaker")),
    ("INV", TerminalStyle(color="yellow", icon="search")),
)
DEFAULT_STYLE = TerminalStyle(color="white", icon="terminal")


def classify_session(name: str) -> TerminalStyle:
    """Pick a cosmetic style from the ticket type embedded in a session name."""

    for marker, style in _STYLES:
        if marker in name:
            return style
    return DEFAULT_STYLE


HostListener = Callable[[Hashable, HostEvent], None]


class TerminalHost(Protocol):
    """Capabilities the terminal manager needs from its host."""

    async def create_handle(
        self,
        name: str,
        cwd: str | None,
        env: Mapping[str, str],
        style: TerminalStyle,
    ) -> Hashable:
        ...

    async def send_text(self, handle: Hashable, text: str) -> None:
        ...

    async def reveal(self, handle: Hashable, steal_focus: bool) -> None:
        ...

    async def dispose(self, handle: Hashable) -> None:
        ...

    def subscribe(self, listener: HostListener) -> Callable[[], None]:
        ...


@dataclass(frozen=True, slots=True)
class FakeHandle:
    name: str
    serial: int


@dataclass(slots=True)
class FakeTerminal:
    handle: FakeHandle
    cwd: str | None
    env: dict[str, str]
    style: TerminalStyle
    sent: list[str] = field(default_factory=list)
    reveals: list[bool] = field(default_factory=list)
    disposed: bool = False


class FakeTerminalHost:
    """In-memory host that records every call; used by tests and dry runs."""

    def __init__(self, *, fail_create: bool = False) -> None:
        self.fail_create = fail_create
        self.terminals: list[FakeTerminal] = []
        self.calls: list[tuple[str, Any]] = []
        self._listeners: list[HostListener] = []
        self._serial = count(1)

    async def create_handle(
        self,
        name: str,
        cwd: str | None,
        env: Mapping[str, str],
        style: TerminalStyle,
    ) -> FakeHandle:
        self.calls.append(("create", name))
        if self.fail_create:
            raise HostUnavailableError(f"Cannot allocate terminal '{name}'")
        handle = FakeHandle(name=name, serial=next(self._serial))
        self.terminals.append(FakeTerminal(handle=handle, cwd=cwd, env=dict(env), style=style))
        return handle

    async def send_text(self, handle: FakeHandle, text: str) -> None:
        self.calls.append(("send", handle.name))
        self.terminal_for(handle).sent.append(text)

    async def reveal(self, handle: FakeHandle, steal_focus: bool) -> None:
        self.calls.append(("focus" if steal_focus else "show", handle.name))
        self.terminal_for(handle).reveals.append(steal_focus)

    async def dispose(self, handle: FakeHandle) -> None:
        self.calls.append(("dispose", handle.name))
        self.terminal_for(handle).disposed = True

    def subscribe(self, listener: HostListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def emit(self, handle: Hashable, event: HostEvent) -> None:
        for listener in list(self._listeners):
            listener(handle, event)

    def terminal_for(self, handle: FakeHandle) -> FakeTerminal:
        for terminal in self.terminals:
            if terminal.handle == handle:
                return terminal
        raise KeyError(handle)

    @property
    def live(self) -> list[FakeTerminal]:
        return [terminal for terminal in self.terminals if not terminal.disposed]

    @property
    def listener_count(self) -> int:
        return len(self._listeners)


__all__ = [
    "DEFAULT_STYLE",
    "FakeHandle",
    "FakeTerminal",
    "FakeTerminalHost",
    "HostEvent",
    "HostListener",
    "HostUnavailableError",
    "TerminalHost",
    "TerminalNotFoundError",
    "TerminalStyle",
    "classify_session",
]
