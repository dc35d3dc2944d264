"""
Persistent key-value stores backing the image cache.

A store holds opaque text values under string keys, the same contract as a
browser's local storage. Writes are whole-value replacements.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Mapping, Optional, Protocol, runtime_checkable

from imgcache.exceptions import StorageError, StorageQuotaError

logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


@runtime_checkable
class KeyValueStore(Protocol):
    def read(self, key: str) -> Optional[str]:
        """Return the stored value, or ``None`` if the key was never written."""
        ...

    def write(self, key: str, value: str) -> None:
        """Replace the value for ``key``. Raises ``StorageError`` on failure."""
        ...


def _check_quota(key: str, value: str, quota_bytes: Optional[int]) -> None:
    if quota_bytes is None:
        return
    size = len(value.encode("utf-8"))
    if size > quota_bytes:
        raise StorageQuotaError(
            f"Writing {size} bytes to '{key}' exceeds the store quota of {quota_bytes} bytes"
        )


class MemoryStore:
    """Dict-backed store, lost when the process exits."""

    def __init__(
        self,
        initial: Optional[Mapping[str, str]] = None,
        *,
        quota_bytes: Optional[int] = None,
    ) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self.quota_bytes = quota_bytes

    def read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def write(self, key: str, value: str) -> None:
        _check_quota(key, value, self.quota_bytes)
        self._data[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self._data


class FileStore:
    """
    Stores each key as ``<directory>/<key>.json``.

    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace``, so a reader never sees a half-written value.
    """

    def __init__(self, directory: str | Path, *, quota_bytes: Optional[int] = None) -> None:
        self.directory = Path(directory).expanduser()
        self.quota_bytes = quota_bytes

    def path_for(self, key: str) -> Path:
        if not _KEY_RE.match(key) or key in (".", ".."):
            raise ValueError(f"Invalid store key: {key!r}")
        return self.directory / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(f"Cannot read '{path}': {exc}") from exc

    def write(self, key: str, value: str) -> None:
        path = self.path_for(key)
        _check_quota(key, value, self.quota_bytes)
        tmp_name = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=self.directory)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as exc:
            raise StorageError(f"Cannot write '{path}': {exc}") from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.debug("Could not remove temporary file %s", tmp_name)
