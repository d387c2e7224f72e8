from __future__ import annotations

from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.models import PhotoEntry  # noqa: E402


@pytest.fixture
def make_image():
    """Factory writing a small real image with Pillow."""
    from PIL import Image

    def _make(path: Path, size=(40, 20), mode="RGB", color="green") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        if mode == "RGBA" and isinstance(color, str):
            color = (0, 128, 0, 128)
        Image.new(mode, size, color=color).save(path)
        return path

    return _make


@pytest.fixture
def make_files():
    """Factory creating plain files whose content is their own name."""

    def _make(directory: Path, names: list[str]) -> list[PhotoEntry]:
        directory.mkdir(parents=True, exist_ok=True)
        entries = []
        for order, name in enumerate(names):
            path = directory / name
            path.write_text(name, encoding="utf-8")
            entries.append(PhotoEntry(path=str(path), display_order=order))
        return entries

    return _make
