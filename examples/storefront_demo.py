"""
Walk through a storefront session against a local image cache.

    python examples/storefront_demo.py https://example.com/a.jpg https://example.com/b.jpg ...

The first URL is tracked like a product card's hero image; the rest are
preloaded like the next page of a product grid. Run it twice to see the
second visit served from the persisted cache.
"""

import asyncio
import sys
import tempfile

import imgcache
from imgcache.logging_utils import configure_logging

STORE_DIR = f"{tempfile.gettempdir()}/imgcache-demo"


async def main(urls):
    configure_logging("INFO")
    settings = imgcache.CacheSettings(storage_dir=STORE_DIR)
    cache = imgcache.ImageCache.from_settings(settings)

    async with imgcache.HttpImageLoader.from_settings(settings) as loader:
        hero, rest = urls[0], urls[1:]

        print("═" * 70)
        print(f"[*] Product card mounts with priority image: {hero}")
        cache.init()
        print(f"    cached before mount: {hero in cache}")
        tracker = imgcache.track_image(hero, priority=True, cache=cache, loader=loader)
        state = await tracker.wait()
        print(f"    loaded={state.loaded} render_url={state.render_url}")

        if rest:
            print(f"[*] Preloading {len(rest)} image(s) for the next page...")
            preloader = imgcache.preload_images(
                rest, cache=cache, loader=loader, delay=settings.preload_delay
            )
            await preloader.drain()
            for url in rest:
                print(f"    {'cached' if url in cache else 'failed'}  {url}")

    print(f"[*] {len(cache)}/{cache.capacity} images cached in {STORE_DIR}")
    print("═" * 70)


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        raise SystemExit(2)
    asyncio.run(main(sys.argv[1:]))
