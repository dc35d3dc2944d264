"""
imgcache - product image cache for storefront front ends.

Usage:
    import imgcache

    tracker = imgcache.track_image("https://cdn.example.com/p/42.jpg", priority=True)
    state = await tracker.wait()

    preloader = imgcache.preload_images(next_page_urls)
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from typing import Callable, Iterable, Optional

from imgcache.cache import (
    CACHE_EXPIRY_MS,
    CACHE_KEY,
    MAX_CACHE_SIZE,
    ImageCache,
    get_image_cache,
    reset_image_cache,
)
from imgcache.config import CacheSettings
from imgcache.exceptions import (
    ConfigError,
    ImageCacheError,
    ImageLoadError,
    StorageError,
    StorageQuotaError,
)
from imgcache.loader import HttpImageLoader, ImageLoader, get_image_loader, reset_image_loader
from imgcache.models import CacheEntry, TrackedImage
from imgcache.preloader import PRELOAD_DELAY, ImagePreloader
from imgcache.storage import FileStore, KeyValueStore, MemoryStore
from imgcache.tracker import ImageTracker

try:
    __version__ = version("imgcache")
except PackageNotFoundError:
    __version__ = "0.0.0+local"


def track_image(
    image_url: str,
    priority: bool = False,
    *,
    cache: Optional[ImageCache] = None,
    loader: Optional[ImageLoader] = None,
    on_change: Optional[Callable[[TrackedImage], None]] = None,
) -> ImageTracker:
    """
    Track one image and return the activated tracker.

    Uses the shared cache and loader unless others are given. On a cache miss
    this must be called from inside a running event loop.
    """
    tracker = ImageTracker(
        cache if cache is not None else get_image_cache(),
        loader if loader is not None else get_image_loader(),
        on_change=on_change,
    )
    tracker.activate(image_url, priority)
    return tracker


def preload_images(
    image_urls: Iterable[str],
    *,
    cache: Optional[ImageCache] = None,
    loader: Optional[ImageLoader] = None,
    delay: float = PRELOAD_DELAY,
) -> ImagePreloader:
    """Schedule a background preload of ``image_urls`` and return the preloader."""
    preloader = ImagePreloader(
        cache if cache is not None else get_image_cache(),
        loader if loader is not None else get_image_loader(),
        delay=delay,
    )
    preloader.preload(image_urls)
    return preloader


__all__ = [
    "__version__",
    "track_image",
    "preload_images",
    "get_image_cache",
    "reset_image_cache",
    "get_image_loader",
    "reset_image_loader",
    "ImageCache",
    "ImageTracker",
    "ImagePreloader",
    "ImageLoader",
    "HttpImageLoader",
    "KeyValueStore",
    "MemoryStore",
    "FileStore",
    "CacheEntry",
    "TrackedImage",
    "CacheSettings",
    "CACHE_KEY",
    "CACHE_EXPIRY_MS",
    "MAX_CACHE_SIZE",
    "PRELOAD_DELAY",
    "ImageCacheError",
    "StorageError",
    "StorageQuotaError",
    "ImageLoadError",
    "ConfigError",
]
