"""Agent CLI command synthesis."""

from .command import (
    SESSION_PREFIX,
    build_command,
    build_session_name,
    default_launch_options,
)
from .utils import sanitize_environment

__all__ = [
    "SESSION_PREFIX",
    "build_command",
    "build_session_name",
    "default_launch_options",
    "sanitize_environment",
]
