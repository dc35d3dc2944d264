"""
Per-image load tracking.

An ``ImageTracker`` follows one image URL at a time and reports whether it is
ready and which URL to render. Cache hits resolve synchronously; misses start
a load task on the running event loop. Re-activating with other inputs, or
deactivating, cancels the pending task so a superseded load can never touch
the reported state.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from imgcache.cache import ImageCache
from imgcache.loader import ImageLoader, failure_reason
from imgcache.logging_utils import log_event
from imgcache.models import TrackedImage

logger = logging.getLogger(__name__)


class ImageTracker:
    def __init__(
        self,
        cache: ImageCache,
        loader: ImageLoader,
        *,
        on_change: Optional[Callable[[TrackedImage], None]] = None,
    ) -> None:
        self._cache = cache
        self._loader = loader
        self._on_change = on_change
        self._inputs: Optional[tuple[str, bool]] = None
        self._task: Optional[asyncio.Task] = None
        self._state = TrackedImage(loaded=False, render_url="")

    @property
    def state(self) -> TrackedImage:
        return self._state

    @property
    def loaded(self) -> bool:
        return self._state.loaded

    @property
    def render_url(self) -> str:
        return self._state.render_url

    @property
    def active(self) -> bool:
        return self._inputs is not None

    def activate(self, image_url: str, priority: bool = False) -> None:
        """
        Start tracking ``image_url``.

        Calling again with the same inputs is a no-op. On a cache miss this
        must run inside an event loop, since the load is scheduled as a task.
        """
        inputs = (image_url, bool(priority))
        if inputs == self._inputs:
            return

        self.deactivate()
        self._inputs = inputs
        self._update(TrackedImage(loaded=False, render_url=image_url))

        self._cache.init()
        cached = self._cache.get(image_url)
        if cached is not None:
            self._update(TrackedImage(loaded=True, render_url=cached.data_url or image_url))
            return

        self._task = asyncio.get_running_loop().create_task(
            self._load(image_url, bool(priority)),
            name=f"imgcache-track:{image_url}",
        )

    def deactivate(self) -> None:
        """Stop tracking; a load still in flight will be ignored."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self._inputs = None

    async def wait(self) -> TrackedImage:
        """Wait until the current activation has settled and return its state."""
        while self._task is not None and not self._task.done():
            task = self._task
            await asyncio.wait({task})
        return self._state

    async def _load(self, image_url: str, priority: bool) -> None:
        try:
            await self._loader.load(image_url, priority=priority)
        except Exception as exc:
            log_event(
                logger, logging.DEBUG, "image_load_failed", url=image_url, reason=failure_reason(exc)
            )
            # the attempt is over; the consumer falls back to whatever it renders for a broken image
            self._update(TrackedImage(loaded=True, render_url=self._state.render_url))
            return

        self._cache.set(image_url)
        self._update(TrackedImage(loaded=True, render_url=image_url))

    def _update(self, state: TrackedImage) -> None:
        if state == self._state:
            return
        self._state = state
        if self._on_change is not None:
            self._on_change(state)

    def __repr__(self) -> str:
        return f"ImageTracker(inputs={self._inputs!r}, state={self._state!r})"
