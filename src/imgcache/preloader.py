"""
Background preloading of images expected to be needed soon.

A batch is scheduled after a short delay so it does not compete with the
images currently being displayed. Cancelling before the delay elapses drops
the batch; loads that already started run to completion and still warm the
cache.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from imgcache.cache import ImageCache
from imgcache.loader import ImageLoader, failure_reason
from imgcache.logging_utils import log_event

logger = logging.getLogger(__name__)

PRELOAD_DELAY = 0.1  # seconds

# Strong references for fire-and-forget tasks; the event loop only keeps weak ones.
_background_tasks: set[asyncio.Task] = set()


def _spawn(coro, name: str) -> asyncio.Task:
    task = asyncio.get_running_loop().create_task(coro, name=name)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


class ImagePreloader:
    def __init__(
        self,
        cache: ImageCache,
        loader: ImageLoader,
        *,
        delay: float = PRELOAD_DELAY,
    ) -> None:
        self._cache = cache
        self._loader = loader
        self.delay = delay
        self._scheduled: Optional[asyncio.Task] = None
        self._loads: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        """True while a batch is waiting for its delay to elapse."""
        return self._scheduled is not None and not self._scheduled.done()

    def preload(self, urls: Iterable[str]) -> None:
        """
        Schedule a batch, replacing any batch still waiting on its delay.

        Must be called from inside a running event loop when ``urls`` is not empty.
        """
        self.cancel()
        batch = list(dict.fromkeys(urls))
        if not batch:
            return

        self._cache.init()
        self._scheduled = _spawn(self._run(batch), name=f"imgcache-preload:{len(batch)}")

    def cancel(self) -> None:
        """Drop a batch whose delay has not elapsed yet."""
        if self._scheduled is not None:
            self._scheduled.cancel()
            self._scheduled = None

    async def drain(self) -> None:
        """Wait for the scheduled batch and every load it started."""
        scheduled = self._scheduled
        if scheduled is not None:
            await asyncio.wait({scheduled})
        while self._loads:
            await asyncio.wait(set(self._loads))

    async def _run(self, batch: list[str]) -> None:
        await asyncio.sleep(self.delay)
        missing = [url for url in batch if self._cache.get(url) is None]
        logger.debug("Preloading %d of %d images", len(missing), len(batch))
        for url in missing:
            task = _spawn(self._preload_one(url), name=f"imgcache-preload-load:{url}")
            self._loads.add(task)
            task.add_done_callback(self._loads.discard)

    async def _preload_one(self, url: str) -> None:
        try:
            await self._loader.load(url)
        except Exception as exc:
            log_event(logger, logging.DEBUG, "image_load_failed", url=url, reason=failure_reason(exc))
            return
        self._cache.set(url)
