"""Shared fixtures: controllable image loader, fake clock, fresh caches."""

from __future__ import annotations

import asyncio
import logging

import pytest

from imgcache.cache import ImageCache, reset_image_cache
from imgcache.exceptions import ImageLoadError
from imgcache.loader import reset_image_loader
from imgcache.storage import MemoryStore

DAY_MS = 24 * 60 * 60 * 1000
NOW_MS = 1_760_000_000_000


class FakeClock:
    def __init__(self, now: int = NOW_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeImageLoader:
    """
    Loader whose loads stay pending until the test resolves or fails them.

    With ``auto`` set, loads settle immediately: URLs in ``broken`` fail,
    everything else succeeds.
    """

    def __init__(self, *, auto: bool = False, broken: set[str] | None = None) -> None:
        self.auto = auto
        self.broken = set(broken or ())
        self.calls: list[tuple[str, bool]] = []
        self._pending: dict[str, list[asyncio.Future]] = {}

    @property
    def urls(self) -> list[str]:
        return [url for url, _ in self.calls]

    async def load(self, url: str, *, priority: bool = False) -> None:
        self.calls.append((url, priority))
        if self.auto:
            await asyncio.sleep(0)
            if url in self.broken:
                raise ImageLoadError(url, "broken")
            return
        fut = asyncio.get_running_loop().create_future()
        self._pending.setdefault(url, []).append(fut)
        await fut

    def resolve(self, url: str) -> None:
        for fut in self._pending.pop(url, []):
            if not fut.done():
                fut.set_result(None)

    def fail(
        self, url: str, reason: str = "network error", *, exc: Exception | None = None
    ) -> None:
        """Fail pending loads of ``url``, with ``exc`` in place of ``ImageLoadError`` if given."""
        for fut in self._pending.pop(url, []):
            if not fut.done():
                fut.set_exception(exc or ImageLoadError(url, reason))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def cache(store: MemoryStore, clock: FakeClock) -> ImageCache:
    return ImageCache(store, clock=clock)


@pytest.fixture
def loader() -> FakeImageLoader:
    return FakeImageLoader()


@pytest.fixture
def make_loader():
    return FakeImageLoader


@pytest.fixture
def settle():
    return _settle


@pytest.fixture(autouse=True)
def _reset_shared_state(monkeypatch, tmp_path):
    monkeypatch.setenv("IMGCACHE_STORAGE_DIR", str(tmp_path / "shared-store"))
    monkeypatch.delenv("IMGCACHE_CONFIG", raising=False)
    reset_image_cache()
    reset_image_loader()
    yield
    reset_image_cache()
    reset_image_loader()
    # the CLI installs a console handler bound to the per-test captured stderr
    pkg_logger = logging.getLogger("imgcache")
    for handler in list(pkg_logger.handlers):
        if getattr(handler, "_imgcache_console", False):
            pkg_logger.removeHandler(handler)
    pkg_logger.setLevel(logging.NOTSET)


async def _settle(rounds: int = 5) -> None:
    """Let already-scheduled tasks run a few steps."""
    for _ in range(rounds):
        await asyncio.sleep(0)
