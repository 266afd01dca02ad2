from __future__ import annotations

import asyncio
import base64
import logging
from collections import OrderedDict
from io import BytesIO
from pathlib import Path
from typing import Dict, Optional, Tuple, Union
from urllib.parse import unquote, unquote_to_bytes, urlparse

import requests
from PIL import Image, ImageDraw, UnidentifiedImageError

from printcanvas.core.errors import ResourceLoadError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
DEFAULT_CACHE_SIZE = 64


class ImageLoader:
    """Resolves element ``url`` fields into decoded RGBA bitmaps.

    Supports local paths (relative ones resolved against ``base_path``),
    ``file://``, ``data:`` and ``http(s)`` URLs. Network reads run in a worker
    thread so the event loop is only suspended, never blocked. Decoded
    bitmaps are cached per URL, least recently used first out once
    ``cache_size`` is reached; registered bitmaps are never evicted. Treat
    returned images as read-only.
    """

    def __init__(self, base_path: Optional[Union[str, Path]] = None,
                 timeout: float = DEFAULT_TIMEOUT,
                 session: Optional[requests.Session] = None,
                 cache_size: int = DEFAULT_CACHE_SIZE) -> None:
        self.base_path = Path(base_path) if base_path else None
        self.timeout = timeout
        self.session = session
        self.cache_size = max(0, int(cache_size))
        self._registered: Dict[str, Image.Image] = {}
        self._cache: OrderedDict[str, Image.Image] = OrderedDict()

    def register(self, url: str, image: Image.Image) -> None:
        """Serve ``url`` from an already decoded bitmap; never evicted."""
        self._registered[url] = image.convert("RGBA") if image.mode != "RGBA" else image

    def clear_cache(self) -> None:
        self._cache.clear()

    async def load(self, url: str) -> Image.Image:
        if not url:
            raise ResourceLoadError(str(url), "empty url")
        registered = self._registered.get(url)
        if registered is not None:
            return registered
        cached = self._cache.get(url)
        if cached is not None:
            self._cache.move_to_end(url)
            return cached
        img = await asyncio.to_thread(self._load_sync, url)
        if self.cache_size:
            self._cache[url] = img
            while len(self._cache) > self.cache_size:
                evicted, _ = self._cache.popitem(last=False)
                logger.debug("Evicted %s from the image cache", evicted[:80])
        return img

    async def dimensions(self, url: str) -> Tuple[int, int]:
        """Natural pixel size of the resource."""
        img = await self.load(url)
        return img.size

    def _load_sync(self, url: str) -> Image.Image:
        data = self.read_bytes(url)
        try:
            with Image.open(BytesIO(data)) as im:
                im.load()
                return im.convert("RGBA")
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise ResourceLoadError(url, f"cannot decode image: {e}") from e

    def read_bytes(self, url: str) -> bytes:
        """Raw bytes behind ``url``; blocking, call from a worker thread."""
        scheme = urlparse(url).scheme.lower()
        if scheme == "data":
            return self._read_data_url(url)
        if scheme in ("http", "https"):
            logger.debug("Downloading %s", url)
            getter = self.session.get if self.session is not None else requests.get
            try:
                response = getter(url, timeout=self.timeout)
                response.raise_for_status()
            except requests.RequestException as e:
                raise ResourceLoadError(url, str(e)) from e
            return response.content
        if scheme == "file":
            path = Path(unquote(urlparse(url).path))
        else:
            path = Path(url)
            if not path.is_absolute() and self.base_path is not None:
                path = self.base_path / path
        try:
            return path.read_bytes()
        except OSError as e:
            raise ResourceLoadError(url, str(e)) from e

    @staticmethod
    def _read_data_url(url: str) -> bytes:
        try:
            header, payload = url.split(",", 1)
        except ValueError:
            raise ResourceLoadError(url[:64], "malformed data url")
        try:
            if header.endswith(";base64"):
                return base64.b64decode(payload)
            return unquote_to_bytes(payload)
        except ValueError as e:
            raise ResourceLoadError(url[:64], str(e)) from e


def placeholder(width: int, height: int) -> Image.Image:
    """Inert 'image missing' tile drawn where a broken image would go."""
    w = max(1, int(width))
    h = max(1, int(height))
    img = Image.new("RGBA", (w, h), (235, 235, 235, 255))
    draw = ImageDraw.Draw(img)
    line = max(1, min(w, h) // 40)
    draw.rectangle([0, 0, w - 1, h - 1], outline=(170, 170, 170, 255), width=line)
    draw.line([(0, 0), (w - 1, h - 1)], fill=(190, 190, 190, 255), width=line)
    draw.line([(0, h - 1), (w - 1, 0)], fill=(190, 190, 190, 255), width=line)
    return img
