"""Path helpers shared by the loading, import and export workflows.

Extension checks are case-insensitive. HEIC/HEIF files only count as images
when pillow-heif is installed, since nothing else here can decode them.
"""

from __future__ import annotations

from collections.abc import Iterable
import os

try:  # pragma: no cover - optional dependency
    from pillow_heif import register_heif_opener  # type: ignore

    register_heif_opener()
    PIL_HEIF_AVAILABLE = True
except ImportError:  # pragma: no cover - optional dependency
    PIL_HEIF_AVAILABLE = False

BASE_IMAGE_EXTENSIONS = frozenset(
    {".jpg", ".jpeg", ".png", ".bmp", ".gif", ".tiff", ".tif", ".webp"}
)
HEIF_EXTENSIONS = frozenset({".heic", ".heif"})


def supported_extensions() -> frozenset[str]:
    """Lower-case extensions that can be listed and decoded."""
    if PIL_HEIF_AVAILABLE:
        return BASE_IMAGE_EXTENSIONS | HEIF_EXTENSIONS
    return BASE_IMAGE_EXTENSIONS


def is_image_file(path: str) -> bool:
    """True if `path` has a supported image extension."""
    return os.path.splitext(path)[1].lower() in supported_extensions()


def filter_image_files(paths: Iterable[str]) -> list[str]:
    """Keep supported image files, preserving input order."""
    return [p for p in paths if is_image_file(p)]


def is_in_directory(path: str, directory: str) -> bool:
    """True if `path` lives directly inside `directory`."""
    parent = os.path.normcase(os.path.dirname(os.path.abspath(path)))
    return parent == os.path.normcase(os.path.abspath(directory))
