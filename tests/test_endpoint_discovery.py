from __future__ import annotations

import json
from pathlib import Path

import pytest

from operator_mcp.api import DESCRIPTOR_RELATIVE_PATH, read_endpoint_descriptor, resolve_base_url
from operator_mcp.config import DEFAULT_API_URL


def write_descriptor(tickets_dir: Path, payload) -> None:
    path = tickets_dir / DESCRIPTOR_RELATIVE_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    text = payload if isinstance(payload, str) else json.dumps(payload)
    path.write_text(text, encoding="utf-8")


def test_descriptor_port_wins(tmp_path: Path) -> None:
    write_descriptor(
        tmp_path,
        {"port": 7123, "pid": 42, "startedAt": "2025-01-01T00:00:00Z", "version": "0.4.0"},
    )

    descriptor = read_endpoint_descriptor(tmp_path)

    assert descriptor is not None
    assert descriptor.started_at == "2025-01-01T00:00:00Z"
    assert resolve_base_url(tmp_path) == "http://localhost:7123"


def test_snake_case_descriptor_is_accepted(tmp_path: Path) -> None:
    write_descriptor(tmp_path, {"port": 9000, "pid": 1, "started_at": "now", "version": "1"})
    assert resolve_base_url(tmp_path) == "http://localhost:9000"


def test_missing_descriptor_uses_default(tmp_path: Path) -> None:
    assert read_endpoint_descriptor(tmp_path) is None
    assert resolve_base_url(tmp_path) == DEFAULT_API_URL
    assert resolve_base_url(None, default_url="http://api:1") == "http://api:1"


@pytest.mark.parametrize(
    "payload",
    [
        "{not json",
        "[]",
        {"port": "7123", "pid": 42, "startedAt": "x", "version": "1"},
        {"port": 0, "pid": 42, "startedAt": "x", "version": "1"},
        {"port": 70000, "pid": 42, "startedAt": "x", "version": "1"},
        {"pid": 42, "startedAt": "x", "version": "1"},
        {"port": 7123, "pid": 42, "startedAt": "x"},
    ],
)
def test_invalid_descriptor_is_treated_as_absent(tmp_path: Path, payload) -> None:
    write_descriptor(tmp_path, payload)

    assert read_endpoint_descriptor(tmp_path) is None
    assert resolve_base_url(tmp_path, default_url="http://fallback:1") == "http://fallback:1"
