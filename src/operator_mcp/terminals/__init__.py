"""Terminal hosts and session lifecycle tracking."""

from .host import (
    FakeTerminalHost,
    HostEvent,
    HostUnavailableError,
    TerminalHost,
    TerminalNotFoundError,
    TerminalStyle,
    classify_session,
)
from .manager import ActivityState, TerminalManager, TerminalRecord, TerminalState, next_activity
from .tmux import TmuxHost

__all__ = [
    "ActivityState",
    "FakeTerminalHost",
    "HostEvent",
    "HostUnavailableError",
    "TerminalHost",
    "TerminalManager",
    "TerminalNotFoundError",
    "TerminalRecord",
    "TerminalState",
    "TerminalStyle",
    "TmuxHost",
    "classify_session",
    "next_activity",
]
