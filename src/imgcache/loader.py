"""
Image loading.

An ``ImageLoader`` fetches one image and either returns (the image is usable)
or raises ``ImageLoadError``. The cache layer only needs that single outcome;
the bytes themselves are left to the HTTP cache of whoever renders them.
"""

from __future__ import annotations

import io
import logging
from typing import Optional, Protocol, runtime_checkable

import httpx
from PIL import Image, UnidentifiedImageError

from imgcache.config import CacheSettings
from imgcache.exceptions import ImageLoadError

logger = logging.getLogger(__name__)

# RFC 9218 urgency for images the user is about to look at
HIGH_PRIORITY_HEADER = "u=1"

_UNDECODABLE_TYPES = {"image/svg+xml"}


@runtime_checkable
class ImageLoader(Protocol):
    async def load(self, url: str, *, priority: bool = False) -> None:
        """Fetch ``url``; raise ``ImageLoadError`` if it is not a usable image."""
        ...


def failure_reason(exc: Exception) -> str:
    """Short reason for a failed load; loaders may raise more than ``ImageLoadError``."""
    if isinstance(exc, ImageLoadError):
        return exc.reason
    return f"{exc.__class__.__name__}: {exc}"


class HttpImageLoader:
    """
    Loads images over HTTP(S) with ``httpx``.

    A load succeeds when the response is 2xx, declares an ``image/*`` content
    type (or a generic binary one Pillow can sniff) and, with
    ``verify_images``, Pillow can identify and verify the bytes.
    """

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        verify_images: bool = True,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.timeout = timeout
        self.verify_images = verify_images
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_settings(cls, settings: CacheSettings) -> "HttpImageLoader":
        return cls(timeout=settings.request_timeout, verify_images=settings.verify_images)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def load(self, url: str, *, priority: bool = False) -> None:
        headers = {"Priority": HIGH_PRIORITY_HEADER} if priority else {}
        try:
            response = await self._get_client().get(url, headers=headers, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ImageLoadError(url, f"HTTP {exc.response.status_code}") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ImageLoadError(url, f"{exc.__class__.__name__}: {exc}") from exc

        content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
        sniffable = self.verify_images and content_type == "application/octet-stream"
        if not content_type.startswith("image/") and not sniffable:
            raise ImageLoadError(url, f"unexpected content type '{content_type or 'none'}'")

        if self.verify_images and content_type not in _UNDECODABLE_TYPES:
            _verify_image_bytes(url, response.content)

        logger.debug("Loaded image %s (%d bytes)", url, len(response.content))

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpImageLoader":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def _verify_image_bytes(url: str, content: bytes) -> None:
    if not content:
        raise ImageLoadError(url, "empty response body")
    try:
        with Image.open(io.BytesIO(content)) as img:
            img.verify()
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        SyntaxError,
        ValueError,
    ) as exc:
        raise ImageLoadError(url, f"undecodable image data: {exc}") from exc


_shared_loader: Optional[HttpImageLoader] = None


def get_image_loader(settings: Optional[CacheSettings] = None) -> HttpImageLoader:
    """Return the process-wide HTTP loader, creating it on first use."""
    global _shared_loader
    if _shared_loader is None:
        _shared_loader = HttpImageLoader.from_settings(settings or CacheSettings.load())
    return _shared_loader


def reset_image_loader() -> None:
    """Forget the shared loader. Does not close its client; call ``aclose`` first."""
    global _shared_loader
    _shared_loader = None
