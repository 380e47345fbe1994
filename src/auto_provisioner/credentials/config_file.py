"""Line-preserving ``KEY=VALUE`` environment file."""

from __future__ import annotations

import contextlib
import io
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from dotenv import dotenv_values

from ..errors import CredentialStoreError

logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_.]*)\s*=")

_NEEDS_QUOTING = re.compile(r"[\s#'\"\\$]")

OWNER_READ_WRITE = 0o600


def quote_value(value: str) -> str:
    """Render ``value`` so python-dotenv reads back exactly the same string.

    Plain values are left bare. Anything with whitespace, ``#``, quotes,
    backslashes or ``$`` is single-quoted with ``\\`` and ``'`` escaped.
    """
    if value and not _NEEDS_QUOTING.search(value):
        return value
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


class ConfigFile:
    """
    An environment file kept as its original lines.

    Values are read through python-dotenv, so quoting and ``export`` prefixes
    behave the way applications reading the file expect, while rewriting only
    ever drops or appends whole lines. Lines that are not ``KEY=VALUE``
    (comments, blanks) pass through untouched.
    """

    def __init__(self, lines: Optional[Iterable[str]] = None) -> None:
        self.lines: List[str] = list(lines or [])

    @classmethod
    def parse(cls, text: str) -> "ConfigFile":
        return cls(text.splitlines())

    @classmethod
    def read(cls, path: Union[str, Path]) -> Optional["ConfigFile"]:
        """Read ``path``; ``None`` if it does not exist, error if unreadable."""
        path = Path(path)
        try:
            return cls.parse(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise CredentialStoreError(f"Cannot read {path}: {exc}") from exc

    @classmethod
    def load(cls, path: Union[str, Path]) -> Optional["ConfigFile"]:
        """Like ``read`` but an unreadable file is logged and treated as absent."""
        try:
            return cls.read(path)
        except CredentialStoreError as exc:
            logger.warning("%s", exc)
            return None

    @staticmethod
    def key_of(line: str) -> Optional[str]:
        match = _KEY_RE.match(line)
        return match.group(1) if match else None

    def keys(self) -> List[str]:
        return [key for key in map(self.key_of, self.lines) if key is not None]

    def values(self) -> Dict[str, str]:
        """Key to value mapping; a repeated key keeps its last value."""
        parsed = dotenv_values(stream=io.StringIO(self.render()), interpolate=False)
        return {key: value for key, value in parsed.items() if value is not None}

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.values().get(key, default)

    def without(self, predicate: Callable[[str], bool]) -> "ConfigFile":
        """Copy without the lines whose key satisfies ``predicate``."""
        kept = []
        for line in self.lines:
            key = self.key_of(line)
            if key is not None and predicate(key):
                continue
            kept.append(line)
        return ConfigFile(kept)

    def render(self) -> str:
        return "\n".join(self.lines) + "\n" if self.lines else ""

    def save(self, path: Union[str, Path], mode: int = OWNER_READ_WRITE) -> None:
        """Write atomically: temp file in the same directory, then rename."""
        path = Path(path)
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        except OSError as exc:
            raise CredentialStoreError(f"Cannot write {path}: {exc}") from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(self.render())
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, path)
        except OSError as exc:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise CredentialStoreError(f"Cannot write {path}: {exc}") from exc

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ConfigFile) and self.lines == other.lines

    def __repr__(self) -> str:
        return f"ConfigFile({len(self.lines)} lines)"
