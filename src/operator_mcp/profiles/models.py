"""Launch profile models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..tickets.models import LaunchOptions


class LaunchProfile(BaseModel):
    """Named preset of launch options an operator can pick by id."""

    id: str = Field(..., description="Unique identifier for the profile.")
    title: str = Field(..., description="Display title for the profile.")
    description: str = Field(default="", description="What the preset is meant for.")
    model: str = Field(default="sonnet", description="Model passed to the agent CLI.")
    yolo_mode: bool = Field(
        default=False,
        description="Start the agent without interactive permission prompts.",
    )
    resume_session: bool = Field(
        default=False,
        description="Resume the ticket's recorded agent session when one exists.",
    )
    provider: str | None = Field(
        default=None,
        description="Preferred LLM provider forwarded to Operator, if any.",
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Arbitrary metadata such as tags.",
    )

    @field_validator("id", "model")
    @classmethod
    def _normalize_required(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Launch profile id and model must not be empty")
        return normalized

    def to_options(self) -> LaunchOptions:
        return LaunchOptions(
            model=self.model,
            yolo_mode=self.yolo_mode,
            resume_session=self.resume_session,
            provider=self.provider,
        )


__all__ = ["LaunchProfile"]
