"""Custom exceptions for imgcache."""

from __future__ import annotations


class ImageCacheError(Exception):
    """Base class for all imgcache errors."""


class StorageError(ImageCacheError):
    """Raised when the persistent key-value store cannot be read or written."""


class StorageQuotaError(StorageError):
    """Raised when a write would exceed the store's quota."""


class ImageLoadError(ImageCacheError):
    """Raised when an image could not be fetched or decoded."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to load image '{url}': {reason}")
        self.url = url
        self.reason = reason


class ConfigError(ImageCacheError):
    """Raised when settings are missing, malformed or out of range."""
