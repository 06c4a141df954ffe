"""Environment helpers for agent terminals."""

from __future__ import annotations

import os
from typing import Mapping

_SANITIZED_VARS = {
    "PYTHONHOME",
    "PYTHONPATH",
    "VIRTUAL_ENV",
    "PIP_RESPECT_VIRTUALENV",
    "TMUX",
    "TMUX_PANE",
}


def sanitize_environment(additional: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return the environment an agent terminal should start with.

    Interpreter and multiplexer variables of this process are dropped so the
    agent does not inherit the orchestrator's virtualenv or tmux client.
    """

    env = dict(os.environ)
    for key in _SANITIZED_VARS:
        env.pop(key, None)
    if additional:
        env.update(additional)
    return env
