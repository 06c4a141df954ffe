"""Locate the Operator REST API without a fixed port."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from ..config import DEFAULT_API_URL
from .models import EndpointDescriptor

logger = logging.getLogger(__name__)

DESCRIPTOR_RELATIVE_PATH = Path("operator") / "api-session.json"


def read_endpoint_descriptor(tickets_dir: str | Path | None) -> EndpointDescriptor | None:
    """Return the descriptor written by a running Operator, if there is a valid one."""

    if tickets_dir is None:
        return None

    path = Path(tickets_dir) / DESCRIPTOR_RELATIVE_PATH
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.debug("No usable endpoint descriptor", extra={"path": str(path), "error": str(exc)})
        return None

    try:
        return EndpointDescriptor.model_validate(document)
    except ValidationError as exc:
        logger.debug("Endpoint descriptor failed validation", extra={"path": str(path), "error": str(exc)})
        return None


def resolve_base_url(
    tickets_dir: str | Path | None = None,
    *,
    default_url: str = DEFAULT_API_URL,
) -> str:
    """Return the API base URL, preferring the descriptor under ``tickets_dir``."""

    descriptor = read_endpoint_descriptor(tickets_dir)
    if descriptor is None:
        return default_url
    return f"http://localhost:{descriptor.port}"


__all__ = ["DESCRIPTOR_RELATIVE_PATH", "read_endpoint_descriptor", "resolve_base_url"]
