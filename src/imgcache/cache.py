"""
Image cache index — keyed by image URL.

Bounded, time-aware map of image URL to ``CacheEntry``, mirrored in full to a
``KeyValueStore`` after every insert. Persistence is best-effort: store
failures are logged and never reach the caller.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Callable, Optional

from imgcache.config import CacheSettings
from imgcache.exceptions import StorageError
from imgcache.logging_utils import log_event
from imgcache.models import CacheEntry
from imgcache.storage import FileStore, KeyValueStore

logger = logging.getLogger(__name__)

CACHE_KEY = "image_cache"
CACHE_EXPIRY_MS = 7 * 24 * 60 * 60 * 1000  # 7 days
MAX_CACHE_SIZE = 50


def _now_ms() -> int:
    return int(time.time() * 1000)


class ImageCache:
    """
    In-memory index over a persisted snapshot.

    Eviction removes the least recently *inserted* key: overwriting an
    existing key keeps its position and ``get`` never reorders.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        key: str = CACHE_KEY,
        max_entries: int = MAX_CACHE_SIZE,
        expiry_ms: int = CACHE_EXPIRY_MS,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._store = store
        self._key = key
        self._max_entries = max_entries
        self._expiry_ms = expiry_ms
        self._clock = clock or _now_ms
        self._entries: dict[str, CacheEntry] = {}
        self._initialized = False

    @classmethod
    def from_settings(cls, settings: CacheSettings) -> "ImageCache":
        store = FileStore(settings.storage_path, quota_bytes=settings.quota_bytes or None)
        return cls(
            store,
            key=settings.storage_key,
            max_entries=settings.max_entries,
            expiry_ms=settings.expiry_ms,
        )

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def capacity(self) -> int:
        return self._max_entries

    @property
    def store(self) -> KeyValueStore:
        return self._store

    def init(self) -> None:
        """Load non-expired entries from the store. Only the first call does work."""
        if self._initialized:
            return

        loaded: dict[str, CacheEntry] = {}
        try:
            raw = self._store.read(self._key)
            if raw:
                parsed = json.loads(raw)
                if not isinstance(parsed, dict):
                    raise TypeError(f"expected a JSON object, got {type(parsed).__name__}")
                now = self._clock()
                for url, data in parsed.items():
                    entry = CacheEntry.from_dict(data)
                    if not entry.is_expired(now, self._expiry_ms):
                        loaded[url] = entry
        # RecursionError: pathologically nested JSON
        except (StorageError, ValueError, TypeError, KeyError, OverflowError, RecursionError) as exc:
            log_event(
                logger,
                logging.WARNING,
                "cache_load_failed",
                key=self._key,
                error=f"{exc.__class__.__name__}: {exc}",
            )
            loaded = {}

        self._entries = loaded
        self._initialized = True
        logger.debug("Image cache initialized with %d entries", len(loaded))

    def get(self, url: str) -> Optional[CacheEntry]:
        """Return the entry for ``url`` or ``None``. Does not call ``init``."""
        return self._entries.get(url)

    def set(self, url: str, data_url: Optional[str] = None) -> CacheEntry:
        """Insert or refresh ``url`` and write the whole index to the store."""
        if url not in self._entries and len(self._entries) >= self._max_entries:
            evicted = next(iter(self._entries))
            del self._entries[evicted]
            log_event(logger, logging.DEBUG, "cache_evicted", url=evicted)

        entry = CacheEntry(url=url, data_url=data_url, timestamp=self._clock())
        self._entries[url] = entry
        self._persist()
        return entry

    def clear(self) -> None:
        """Drop every entry and persist the empty index."""
        self._entries.clear()
        self._persist()

    def entries(self) -> list[CacheEntry]:
        """Entries in eviction order, next to be evicted first."""
        return list(self._entries.values())

    def snapshot(self) -> dict[str, dict]:
        return {url: entry.to_dict() for url, entry in self._entries.items()}

    def _persist(self) -> None:
        try:
            self._store.write(self._key, json.dumps(self.snapshot(), separators=(",", ":")))
        except StorageError as exc:
            log_event(
                logger,
                logging.WARNING,
                "cache_persist_failed",
                key=self._key,
                entries=len(self._entries),
                error=f"{exc.__class__.__name__}: {exc}",
            )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, url: object) -> bool:
        return url in self._entries


_shared_cache: Optional[ImageCache] = None


def get_image_cache(settings: Optional[CacheSettings] = None) -> ImageCache:
    """
    Return the process-wide cache, creating it on first use.

    ``settings`` is only consulted when the instance is created; pass them on
    the first call or call ``reset_image_cache`` beforehand.
    """
    global _shared_cache
    if _shared_cache is None:
        _shared_cache = ImageCache.from_settings(settings or CacheSettings.load())
    return _shared_cache


def reset_image_cache() -> None:
    """Forget the shared cache; the next ``get_image_cache`` builds a fresh one."""
    global _shared_cache
    _shared_cache = None
