"""Command-line interface for imgcache."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import datetime, timezone
from typing import Any, Sequence

import imgcache as ic
from imgcache.cache import ImageCache
from imgcache.config import CacheSettings
from imgcache.exceptions import ImageCacheError
from imgcache.loader import HttpImageLoader
from imgcache.logging_utils import configure_logging
from imgcache.models import CacheEntry
from imgcache.preloader import ImagePreloader
from imgcache.tracker import ImageTracker


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imgcache",
        description="Inspect and warm the storefront image cache.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {ic.__version__}")
    parser.add_argument("--config", default=None, help="Path to a YAML settings file")
    parser.add_argument("--storage-dir", default=None, help="Directory holding the cache store")
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, ...)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    list_cmd = subparsers.add_parser("list", help="Show cached image entries.")
    list_cmd.add_argument("--json", action="store_true", help="Print entries as JSON")

    fetch = subparsers.add_parser("fetch", help="Load one image through the cache.")
    fetch.add_argument("url", help="Image URL")
    fetch.add_argument("--priority", action="store_true", help="Request with high priority")
    fetch.add_argument("--json", action="store_true", help="Print result as JSON")

    preload = subparsers.add_parser("preload", help="Warm the cache for several images.")
    preload.add_argument("urls", nargs="+", help="Image URLs")
    preload.add_argument("--json", action="store_true", help="Print result as JSON")

    subparsers.add_parser("clear", help="Remove every cached entry.")

    serve = subparsers.add_parser("serve", help="Run the HTTP service.")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve.add_argument("--port", type=int, default=8080, help="Bind port")
    return parser


def _load_settings(args: argparse.Namespace) -> CacheSettings:
    return CacheSettings.load(
        args.config,
        overrides={"storage_dir": args.storage_dir, "log_level": args.log_level},
    )


def _entry_to_dict(entry: CacheEntry) -> dict[str, Any]:
    return {
        "url": entry.url,
        "data_url": entry.data_url,
        "timestamp": entry.timestamp,
        "cached_at": datetime.fromtimestamp(entry.timestamp / 1000, tz=timezone.utc).isoformat(),
    }


def _print_rich_entries(cache: ImageCache) -> None:
    entries = cache.entries()
    try:
        from rich.console import Console
        from rich.table import Table
    except ImportError:
        print(f"{len(entries)}/{cache.capacity} cached images")
        for entry in entries:
            print(f"  {_entry_to_dict(entry)['cached_at']}  {entry.url}")
        return

    table = Table(
        title=f"Image cache ({len(entries)}/{cache.capacity})",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("#", justify="right", style="dim")
    table.add_column("URL", style="cyan", overflow="fold")
    table.add_column("Cached at (UTC)", style="green")
    table.add_column("Data URL", style="yellow")

    for idx, entry in enumerate(entries, start=1):
        info = _entry_to_dict(entry)
        table.add_row(str(idx), entry.url, info["cached_at"], "yes" if entry.data_url else "")

    Console().print(table)


async def _fetch(
    cache: ImageCache, settings: CacheSettings, url: str, priority: bool
) -> dict[str, Any]:
    async with HttpImageLoader.from_settings(settings) as loader:
        cache.init()
        was_cached = url in cache
        tracker = ImageTracker(cache, loader)
        tracker.activate(url, priority)
        state = await tracker.wait()
    return {**state.to_dict(), "url": url, "from_cache": was_cached, "cached": url in cache}


async def _preload(cache: ImageCache, settings: CacheSettings, urls: list[str]) -> dict[str, Any]:
    async with HttpImageLoader.from_settings(settings) as loader:
        preloader = ImagePreloader(cache, loader, delay=settings.preload_delay)
        preloader.preload(urls)
        await preloader.drain()
    cached = [url for url in dict.fromkeys(urls) if url in cache]
    failed = [url for url in dict.fromkeys(urls) if url not in cache]
    return {"cached": cached, "failed": failed}


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        settings = _load_settings(args)
    except ImageCacheError as exc:
        print(f"imgcache: {exc}", file=sys.stderr)
        return 1

    configure_logging(settings.log_level)

    if args.command == "serve":
        from imgcache.server import run_server

        try:
            run_server(port=args.port, host=args.host, settings=settings)
        except RuntimeError as exc:
            print(f"imgcache: {exc}", file=sys.stderr)
            return 1
        return 0

    cache = ImageCache.from_settings(settings)

    if args.command == "list":
        cache.init()
        if args.json:
            data = {
                "count": len(cache),
                "capacity": cache.capacity,
                "entries": [_entry_to_dict(e) for e in cache.entries()],
            }
            print(json.dumps(data, indent=2, sort_keys=True))
        else:
            _print_rich_entries(cache)
        return 0

    if args.command == "clear":
        cache.init()
        removed = len(cache)
        cache.clear()
        print(f"Removed {removed} cached image(s).")
        return 0

    if args.command == "fetch":
        result = asyncio.run(_fetch(cache, settings, args.url, args.priority))
        if args.json:
            print(json.dumps(result, indent=2, sort_keys=True))
        else:
            source = "cache" if result["from_cache"] else "network"
            status = "cached" if result["cached"] else "not cached (load failed)"
            print(f"{args.url}: {status} [{source}] -> {result['render_url']}")
        return 0

    if args.command == "preload":
        result = asyncio.run(_preload(cache, settings, args.urls))
        if args.json:
            print(json.dumps(result, indent=2, sort_keys=True))
        else:
            print(f"Cached {len(result['cached'])} image(s), {len(result['failed'])} failed.")
            for url in result["failed"]:
                print(f"  failed: {url}")
        return 0 if not result["failed"] else 1

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
