"""Thumbnail decoding and caching.

Decoding uses Pillow (with pillow-heif registered when available, see
`infrastructure.utils`). Results are kept in a bounded in-memory LRU cache
keyed by path, mtime, size and requested side, so a renamed or edited file is
decoded again.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
import hashlib
import os
import threading

from PIL import Image, ImageOps, UnidentifiedImageError
from loguru import logger

from core.errors import DecodeError
from infrastructure.utils import is_image_file


def _compute_cache_key(path: str, size_key: int) -> str:
    """Compute a stable cache key from path, mtime, size, and requested side."""
    try:
        st = os.stat(path)
        sig = f"{path}|{int(st.st_mtime_ns)}|{int(st.st_size)}|{int(size_key)}".encode(
            "utf-8", errors="ignore"
        )
    except OSError:
        sig = f"{path}|0|0|{int(size_key)}".encode("utf-8", errors="ignore")
    return hashlib.sha1(sig).hexdigest()


@dataclass
class _MemCacheItem:
    key: str
    image: Image.Image


class _LRUCache:
    def __init__(self, capacity: int) -> None:
        self._cap = max(1, int(capacity or 1))
        self._data: OrderedDict[str, _MemCacheItem] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def get(self, key: str) -> Image.Image | None:
        """Return cached image for key, moving it to the MRU position."""
        with self._lock:
            item = self._data.get(key)
            if not item:
                return None
            self._data.move_to_end(key)
            return item.image

    def put(self, key: str, image: Image.Image) -> None:
        """Insert or update `key` with `image`, evicting LRU when over capacity."""
        with self._lock:
            self._data[key] = _MemCacheItem(key, image)
            self._data.move_to_end(key)
            while len(self._data) > self._cap:
                self._data.popitem(last=False)


class ImageService:
    """Decodes bounded thumbnails for the worker pool."""

    def __init__(self, settings: object | None = None) -> None:
        """Initialize the memory cache from `thumbnails.mem_cache` in settings."""
        self._mem_cap = 512
        if settings is not None:
            try:
                self._mem_cap = int(settings.get("thumbnails.mem_cache", 512) or 512)
            except (ValueError, TypeError):
                self._mem_cap = 512
        self._mem_cache = _LRUCache(self._mem_cap)

    # Public API
    def decode(self, path: str, max_dimension: int) -> Image.Image:
        """Return an image of `path` no larger than `max_dimension` on either side.

        Raises:
            DecodeError: The file is missing, unsupported or corrupt.
        """
        key = _compute_cache_key(path, max_dimension)
        cached = self._mem_cache.get(key)
        if cached is not None:
            return cached
        if not os.path.isfile(path):
            raise DecodeError(path, "file does not exist")
        if not is_image_file(path):
            raise DecodeError(path, "unsupported file type")
        img = self._load_via_pillow(path, max_dimension)
        self._mem_cache.put(key, img)
        return img

    # Internal helpers
    def _load_via_pillow(self, path: str, requested_side: int) -> Image.Image:
        """Load and downscale with Pillow, honouring EXIF orientation."""
        try:
            with Image.open(path) as im:
                try:
                    im = ImageOps.exif_transpose(im)
                except (OSError, ValueError, AttributeError):
                    pass
                if requested_side and requested_side > 0:
                    im.thumbnail((requested_side, requested_side), Image.Resampling.LANCZOS)
                else:
                    im.load()
                return im.copy()
        except (OSError, ValueError, UnidentifiedImageError) as ex:
            logger.debug("Pillow load failed for {}: {}", path, ex)
            raise DecodeError(path, str(ex)) from ex
