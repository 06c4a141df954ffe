"""Load launch profiles from YAML files."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

import yaml
from pydantic import ValidationError

from .models import LaunchProfile


class ProfileLoadError(RuntimeError):
    """Raised when one or more profile files cannot be parsed."""


def _documents(payload: Any) -> list[Any]:
    # A file holds one profile, a list of them, or a mapping with a "profiles" list.
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("profiles"), list):
        return payload["profiles"]
    return [payload]


class ProfileLoader:
    """Collects launch profiles from search paths on top of built-in defaults."""

    def __init__(
        self,
        search_paths: Iterable[Path] | None = None,
        *,
        defaults: Iterable[LaunchProfile] = (),
    ) -> None:
        paths = [Path(path) for path in (search_paths or [])]
        self._search_paths: list[Path] = [path for path in paths if path.is_dir()]
        self._defaults = {profile.id: profile for profile in defaults}

    @property
    def search_paths(self) -> list[Path]:
        return list(self._search_paths)

    def load_all(self) -> dict[str, LaunchProfile]:
        """Load every profile; later search paths override earlier ones on id collisions."""

        profiles: dict[str, LaunchProfile] = dict(self._defaults)
        errors: list[str] = []

        for base in self._search_paths:
            for path in sorted(base.glob("*.yml")) + sorted(base.glob("*.yaml")):
                try:
                    payload = yaml.safe_load(path.read_text(encoding="utf-8"))
                except (OSError, yaml.YAMLError) as exc:
                    errors.append(f"Failed to read profiles from {path}: {exc}")
                    continue

                if payload is None:
                    continue

                for index, document in enumerate(_documents(payload)):
                    try:
                        profile = LaunchProfile.model_validate(document)
                    except ValidationError as exc:
                        errors.append(f"Profile #{index} in {path} is invalid: {exc}")
                        continue
                    profiles[profile.id] = profile

        if errors:
            raise ProfileLoadError("; ".join(errors))

        return profiles

    def get(self, profile_id: str) -> LaunchProfile:
        profiles = self.load_all()
        try:
            return profiles[profile_id]
        except KeyError as exc:
            raise ProfileLoadError(f"Launch profile '{profile_id}' not found") from exc


def default_profiles(model: str) -> list[LaunchProfile]:
    """Profiles available even when no YAML files are configured."""

    return [
        LaunchProfile(id="default", title="Default", model=model),
        LaunchProfile(
            id="resume",
            title="Resume",
            description="Continue the agent session recorded on the ticket.",
            model=model,
            resume_session=True,
        ),
    ]


__all__ = ["ProfileLoadError", "ProfileLoader", "default_profiles"]
