"""
REST API for the image cache.

Lets non-Python front ends look up, track and preload images through a shared
server-side cache.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import imgcache as ic
from imgcache.cache import ImageCache
from imgcache.config import CacheSettings
from imgcache.loader import HttpImageLoader, ImageLoader
from imgcache.preloader import ImagePreloader
from imgcache.tracker import ImageTracker

logger = logging.getLogger(__name__)

try:
    from fastapi import FastAPI, HTTPException, Query
    from pydantic import BaseModel
except ImportError:
    FastAPI = None
    BaseModel = object


class TrackRequest(BaseModel):
    url: str
    priority: bool = False


class PreloadRequest(BaseModel):
    urls: list[str]


def create_app(
    cache: Optional[ImageCache] = None,
    loader: Optional[ImageLoader] = None,
    settings: Optional[CacheSettings] = None,
) -> "FastAPI":
    if FastAPI is None:
        raise RuntimeError(
            "FastAPI is not installed. To run the imgcache server, "
            "install with `pip install imgcache[server]`."
        )

    settings = settings or CacheSettings.load()
    cache = cache if cache is not None else ImageCache.from_settings(settings)
    loader = loader if loader is not None else HttpImageLoader.from_settings(settings)

    app = FastAPI(
        title="imgcache API",
        description="Storefront image cache",
        version=ic.__version__,
    )
    app.state.cache = cache
    app.state.loader = loader

    # The cache is only safe on the event loop thread; keep handlers async.
    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": ic.__version__}

    @app.get("/entries")
    async def list_entries() -> dict[str, Any]:
        cache.init()
        return {
            "count": len(cache),
            "capacity": cache.capacity,
            "entries": [entry.to_dict() for entry in cache.entries()],
        }

    @app.get("/entries/lookup")
    async def lookup_entry(url: str = Query(..., description="Image URL")) -> dict[str, Any]:
        cache.init()
        entry = cache.get(url)
        if entry is None:
            raise HTTPException(status_code=404, detail=f"Not cached: {url}")
        return entry.to_dict()

    @app.post("/track")
    async def track(req: TrackRequest) -> dict[str, Any]:
        """Load one image through the cache and report what to render."""
        tracker = ImageTracker(cache, loader)
        tracker.activate(req.url, req.priority)
        state = await tracker.wait()
        return {**state.to_dict(), "cached": req.url in cache}

    @app.post("/preload", status_code=202)
    async def preload(req: PreloadRequest) -> dict[str, int]:
        """Schedule a background preload; returns before any image is fetched."""
        ImagePreloader(cache, loader, delay=settings.preload_delay).preload(req.urls)
        return {"scheduled": len(dict.fromkeys(req.urls))}

    return app


def run_server(
    port: int = 8080,
    host: str = "127.0.0.1",
    settings: Optional[CacheSettings] = None,
) -> None:
    try:
        import uvicorn
    except ImportError:
        raise RuntimeError(
            "uvicorn is not installed. Install with `pip install imgcache[server]`."
        )

    app = create_app(settings=settings)
    logger.info("Serving imgcache API on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port)
