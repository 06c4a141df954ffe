"""Wire models for the Operator control-plane API."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class EndpointDescriptor(BaseModel):
    """Contents of the ``api-session.json`` file written by a running Operator."""

    model_config = ConfigDict(strict=True, populate_by_name=True)

    port: int = Field(..., ge=1, le=65535)
    pid: int
    started_at: str = Field(..., validation_alias=AliasChoices("startedAt", "started_at"))
    version: str


class HealthResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: str
    version: str | None = None


class LaunchTicketRequest(BaseModel):
    provider: str | None = None
    model: str | None = None
    yolo_mode: bool = False
    wrapper: str
    retry_reason: str | None = None
    resume_session_id: str | None = None


class LaunchTicketResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ticket_id: str
    terminal_name: str
    working_directory: str
    command: str
    worktree_created: bool
    branch: str | None = None


__all__ = ["EndpointDescriptor", "HealthResponse", "LaunchTicketRequest", "LaunchTicketResponse"]
