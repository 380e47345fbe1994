"""Timestamped release directories behind an atomically switched link."""

from __future__ import annotations

import logging
import os
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional, Union

from ..errors import ReleaseCollisionError, ReleaseError, ReleaseFetchError, ReleaseLinkError

logger = logging.getLogger(__name__)

VERSION_FORMAT = "%Y-%m-%d-%H-%M-%S"
_VERSION_RE = re.compile(r"^\d{4}-\d{2}-\d{2}-\d{2}-\d{2}-\d{2}$")

DEFAULT_LINK_NAME = "current"

# fetch_action(repository_locator, target_path) must fully populate target_path.
FetchAction = Callable[[str, Path], None]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ReleaseDirectory:
    """One versioned copy of the application under ``base_path``."""

    base_path: Path
    version_id: str
    link_name: str = DEFAULT_LINK_NAME

    @property
    def target_path(self) -> Path:
        return self.base_path / self.version_id

    @property
    def current_link(self) -> Path:
        return self.base_path / self.link_name


class ReleaseManager:
    """
    Deploys application code as ``base_path/<version_id>`` and repoints
    ``base_path/current`` at it.

    Release directories are never removed or modified here; only the link
    moves. On POSIX the switch is a rename of a freshly created symlink over
    the old one, so readers always resolve either the old or the new release.
    Platforms without an atomic replace for links fall back to
    unlink-then-symlink, which leaves a short window with no link.
    """

    def __init__(
        self,
        link_name: str = DEFAULT_LINK_NAME,
        clock: Callable[[], datetime] = _utc_now,
        atomic_replace: Optional[bool] = None,
    ) -> None:
        self.link_name = link_name
        self._clock = clock
        self.atomic_replace = os.name == "posix" if atomic_replace is None else atomic_replace

    def deploy(
        self,
        repository_locator: str,
        base_path: Union[str, Path],
        fetch_action: FetchAction,
    ) -> ReleaseDirectory:
        base_path = Path(os.path.abspath(base_path))
        release = ReleaseDirectory(
            base_path=base_path,
            version_id=self._clock().strftime(VERSION_FORMAT),
            link_name=self.link_name,
        )

        try:
            base_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ReleaseError(f"Cannot create deployment root {base_path}: {exc}") from exc

        target = release.target_path
        if target.exists() or target.is_symlink():
            raise ReleaseCollisionError(
                f"Release {release.version_id} already exists in {base_path}; "
                "wait a second and deploy again"
            )

        logger.info("Fetching %s into %s", repository_locator, target)
        try:
            fetch_action(repository_locator, target)
        except Exception as exc:
            raise ReleaseFetchError(f"Fetching {repository_locator} failed: {exc}") from exc
        if not target.is_dir():
            raise ReleaseFetchError(f"Fetch reported success but {target} is not a directory")

        self.switch(release)
        logger.info("%s -> %s", release.current_link, target)
        return release

    def switch(self, release: ReleaseDirectory) -> None:
        """Point the current link at ``release``."""
        link = release.current_link
        if link.exists() and not link.is_symlink():
            raise ReleaseLinkError(
                f"{link} is a real directory, not a release link; move it away first"
            )

        try:
            if self.atomic_replace:
                self._replace_link(release.target_path, link)
            else:
                if link.is_symlink():
                    link.unlink()
                os.symlink(release.target_path, link, target_is_directory=True)
        except OSError as exc:
            raise ReleaseLinkError(f"Cannot point {link} at {release.target_path}: {exc}") from exc

    @staticmethod
    def _replace_link(target: Path, link: Path) -> None:
        staging = link.with_name(f".{link.name}.{uuid.uuid4().hex}")
        os.symlink(target, staging, target_is_directory=True)
        try:
            os.replace(staging, link)
        except OSError:
            staging.unlink()
            raise

    def list_releases(self, base_path: Union[str, Path]) -> List[ReleaseDirectory]:
        """All release directories under ``base_path``, oldest first."""
        base_path = Path(os.path.abspath(base_path))
        if not base_path.is_dir():
            return []
        return [
            ReleaseDirectory(base_path, entry.name, self.link_name)
            for entry in sorted(base_path.iterdir(), key=lambda p: p.name)
            if _VERSION_RE.match(entry.name) and entry.is_dir() and not entry.is_symlink()
        ]

    def current_release(self, base_path: Union[str, Path]) -> Optional[ReleaseDirectory]:
        base_path = Path(os.path.abspath(base_path))
        link = base_path / self.link_name
        if not link.is_symlink():
            return None
        version_id = Path(os.readlink(link)).name
        return ReleaseDirectory(base_path, version_id, self.link_name)
