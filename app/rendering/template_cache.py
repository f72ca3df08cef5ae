import io
import logging
import os
import threading
from typing import Callable
from urllib.parse import urlparse

import requests
from PIL import Image, UnidentifiedImageError

from app.errors import ImageLoadError

logger = logging.getLogger("template_cache")

Fetcher = Callable[[str], bytes]


def fetch_image_bytes(url: str, timeout: float = 15) -> bytes:
    """HTTP(S) URLs go through requests; file:// URLs and plain paths are read from disk."""
    parsed = urlparse(url)

    if parsed.scheme in ("http", "https"):
        try:
            resp = requests.get(url, timeout=timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise ImageLoadError(url, str(exc)) from exc
        return resp.content

    path = parsed.path if parsed.scheme == "file" else url
    if not os.path.exists(path):
        raise ImageLoadError(url, "file not found")
    try:
        with open(path, "rb") as fh:
            return fh.read()
    except OSError as exc:
        raise ImageLoadError(url, str(exc)) from exc


def decode_image(url: str, raw: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(raw))
        img.load()
    except Image.DecompressionBombError as exc:
        raise ImageLoadError(url, f"image too large ({exc})") from exc
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ImageLoadError(url, f"undecodable image data ({exc})") from exc

    if img.width <= 0 or img.height <= 0:
        raise ImageLoadError(url, "empty image")
    return img.convert("RGBA")


class TemplateImageCache:
    """
    Decoded background templates keyed by URL.

    Entries live for the lifetime of the cache; failed loads store nothing.
    Concurrent first requests for one URL share a single fetch.
    """

    def __init__(self, fetcher: Fetcher | None = None, timeout: float = 15):
        self._fetch = fetcher or (lambda url: fetch_image_bytes(url, timeout))
        self._images: dict[str, Image.Image] = {}
        self._url_locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, url: str) -> threading.Lock:
        with self._guard:
            return self._url_locks.setdefault(url, threading.Lock())

    def get(self, url: str) -> Image.Image:
        if not url:
            raise ImageLoadError(str(url), "empty template URL")

        cached = self._images.get(url)
        if cached is not None:
            return cached

        with self._lock_for(url):
            cached = self._images.get(url)
            if cached is not None:
                return cached

            logger.info(f"🖼️ Loading template {url}")
            try:
                raw = self._fetch(url)
            except ImageLoadError:
                raise
            except Exception as exc:
                raise ImageLoadError(url, str(exc)) from exc

            img = decode_image(url, raw)
            self._images[url] = img
            logger.info(f"✅ Template cached {url} ({img.width}x{img.height})")
            return img

    def __contains__(self, url: str) -> bool:
        return url in self._images

    def __len__(self) -> int:
        return len(self._images)

    def clear(self):
        with self._guard:
            self._images.clear()
            self._url_locks.clear()


# Process-wide instance; pass an explicit cache to isolate callers.
default_cache = TemplateImageCache()
