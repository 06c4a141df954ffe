"""Ticket and launch option models."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TicketType(str, Enum):
    """Ticket kinds recognised from the id prefix."""

    FEAT = "FEAT"
    FIX = "FIX"
    TASK = "TASK"
    SPIKE = "SPIKE"
    INV = "INV"


class TicketStatus(str, Enum):
    """Lifecycle directory a ticket currently lives in."""

    QUEUE = "queue"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TicketInfo(BaseModel):
    """Read-only description of a ticket file as discovered on disk."""

    id: str = Field(..., description="Ticket identifier, e.g. FEAT-123.")
    type: TicketType = Field(default=TicketType.TASK, description="Ticket kind inferred from the id.")
    title: str = Field(default="", description="Human readable ticket title.")
    status: TicketStatus = Field(default=TicketStatus.QUEUE, description="Lifecycle status.")
    file_path: Path = Field(..., description="Absolute path to the ticket markdown file.")

    @field_validator("id")
    @classmethod
    def _normalize_id(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Ticket id must not be empty")
        return normalized


class TicketMetadata(BaseModel):
    """Fields extracted from the frontmatter block of a ticket document."""

    id: str = ""
    status: str | None = None
    step: str = ""
    priority: str = ""
    project: str = ""
    worktree_path: str | None = None
    branch: str | None = None
    working_directory: str | None = None
    sessions: dict[str, str] | None = None
    entries: dict[str, str] = Field(default_factory=dict)


class LaunchOptions(BaseModel):
    """How an agent should be started for a ticket."""

    model_config = ConfigDict(frozen=True)

    model: str = "sonnet"
    yolo_mode: bool = False
    resume_session: bool = False
    provider: str | None = None


__all__ = ["LaunchOptions", "TicketInfo", "TicketMetadata", "TicketStatus", "TicketType"]
