"""Versioned release directories and the current-release link."""

from .manager import (
    DEFAULT_LINK_NAME,
    VERSION_FORMAT,
    FetchAction,
    ReleaseDirectory,
    ReleaseManager,
)

__all__ = [
    "DEFAULT_LINK_NAME",
    "VERSION_FORMAT",
    "FetchAction",
    "ReleaseDirectory",
    "ReleaseManager",
]
