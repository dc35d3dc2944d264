"""Data models shared across imgcache."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class CacheEntry:
    url: str
    data_url: Optional[str] = None
    timestamp: int = 0  # epoch milliseconds

    def age_ms(self, now: int) -> int:
        return now - self.timestamp

    def is_expired(self, now: int, expiry_ms: int) -> bool:
        return self.age_ms(now) >= expiry_ms

    def to_dict(self) -> dict[str, Any]:
        """Persisted shape: ``{"url", "dataUrl"?, "timestamp"}``."""
        data: dict[str, Any] = {"url": self.url, "timestamp": self.timestamp}
        if self.data_url is not None:
            data["dataUrl"] = self.data_url
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "CacheEntry":
        """
        Parse one persisted entry.

        Raises ``TypeError``, ``KeyError`` or ``ValueError`` when the stored
        shape is not one this version understands.
        """
        if not isinstance(data, dict):
            raise TypeError(f"cache entry must be an object, got {type(data).__name__}")
        url = data["url"]
        timestamp = data["timestamp"]
        data_url = data.get("dataUrl")
        if not isinstance(url, str):
            raise TypeError("cache entry 'url' must be a string")
        # bool is an int subclass; a stored true/false is not a timestamp
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise TypeError("cache entry 'timestamp' must be a number")
        if not math.isfinite(timestamp):
            raise ValueError(f"cache entry 'timestamp' must be finite, got {timestamp!r}")
        if data_url is not None and not isinstance(data_url, str):
            raise TypeError("cache entry 'dataUrl' must be a string")
        return cls(url=url, data_url=data_url, timestamp=int(timestamp))


@dataclass(frozen=True)
class TrackedImage:
    """What a tracked image reports to its consumer."""

    loaded: bool
    render_url: str

    def to_dict(self) -> dict[str, Any]:
        return {"loaded": self.loaded, "render_url": self.render_url}
