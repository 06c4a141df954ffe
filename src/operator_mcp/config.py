"""Configuration management for Operator MCP."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated
import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_API_URL = "http://localhost:7008"

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")
_DEFAULT_PROFILE_PATHS = (Path("profiles"),)


class OperatorSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    api_url: str = Field(default=DEFAULT_API_URL, validation_alias="OPERATOR_API_URL")
    tickets_dir: Path | None = Field(default=None, validation_alias="OPERATOR_TICKETS_DIR")
    agent_binary: str = Field(default="claude", validation_alias="OPERATOR_AGENT_BINARY")
    default_model: str = Field(default="sonnet", validation_alias="OPERATOR_DEFAULT_MODEL")
    tmux_path: str | None = Field(default=None, validation_alias="OPERATOR_TMUX_PATH")
    probe_timeout: float = Field(default=2.0, validation_alias="OPERATOR_PROBE_TIMEOUT")
    request_timeout: float = Field(default=30.0, validation_alias="OPERATOR_REQUEST_TIMEOUT")
    profile_paths: Annotated[tuple[Path, ...], NoDecode] = Field(
        default=_DEFAULT_PROFILE_PATHS, validation_alias="OPERATOR_PROFILE_PATHS"
    )
    log_level: str = Field(default="INFO", validation_alias="OPERATOR_LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"OPERATOR_LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}")
        return level

    @field_validator("api_url")
    @classmethod
    def _strip_api_url(cls, value: str) -> str:
        normalized = value.strip().rstrip("/")
        if not normalized:
            return DEFAULT_API_URL
        return normalized

    @field_validator("profile_paths", mode="before")
    @classmethod
    def _split_profile_paths(cls, value):
        # The env var is a path-separated string; init kwargs may pass a sequence.
        if value is None:
            value = ()
        elif isinstance(value, str):
            value = value.split(os.pathsep)
        elif not isinstance(value, (list, tuple)):
            raise TypeError("OPERATOR_PROFILE_PATHS must be a list of paths or a path-separated string")
        paths = tuple(Path(str(item).strip()) for item in value if str(item).strip())
        return paths or _DEFAULT_PROFILE_PATHS

    @field_validator("probe_timeout", "request_timeout")
    @classmethod
    def _validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Timeouts must be positive numbers of seconds")
        return value


@lru_cache(maxsize=1)
def get_settings() -> OperatorSettings:
    """Return the process-wide settings with paths made absolute."""

    settings = OperatorSettings()
    if settings.tickets_dir is not None:
        settings.tickets_dir = settings.tickets_dir.expanduser().resolve()
    settings.profile_paths = tuple(path.expanduser().resolve() for path in settings.profile_paths)
    return settings


__all__ = ["DEFAULT_API_URL", "OperatorSettings", "get_settings"]
