"""Launch profile models and loader exports."""

from .loader import ProfileLoadError, ProfileLoader, default_profiles
from .models import LaunchProfile

__all__ = [
    "LaunchProfile",
    "ProfileLoadError",
    "ProfileLoader",
    "default_profiles",
]
