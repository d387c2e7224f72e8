"""Settings access helpers for JSON-based configuration."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

DEFAULTS: dict[str, Any] = {
    "workers": {"count": 0, "stagger_ms": 100},
    "thumbnails": {"size": 200, "mem_cache": 512},
    "export": {"quality": 90},
    "logging": {"dir": None, "level": "INFO"},
}


class JsonSettings:
    """Lightweight JSON settings reader with dotted-key access.

    Values missing from the file fall back to `DEFAULTS`. Nothing is ever
    written back.
    """

    def __init__(self, settings_path: str | Path | None = None) -> None:
        self._data: dict[str, Any] = {}
        self._path = Path(settings_path) if settings_path is not None else None
        if self._path is not None:
            if not self._path.exists():
                raise FileNotFoundError(f"settings.json not found: {self._path}")
            with self._path.open("r", encoding="utf-8") as f:
                self._data = json.load(f)

    def get(self, key: str, default: Any | None = None) -> Any:
        """Return value for dotted `key`, or the built-in default, or `default`."""
        for source in (self._data, DEFAULTS):
            found, value = _lookup(source, key)
            if found and value is not None:
                return value
        return default

    @property
    def worker_count(self) -> int:
        """Configured worker threads; 0 or invalid means one per CPU."""
        try:
            count = int(self.get("workers.count", 0) or 0)
        except (ValueError, TypeError):
            count = 0
        return count if count > 0 else max(1, os.cpu_count() or 1)

    @property
    def stagger_delay(self) -> float:
        """Worker start-up stagger in seconds."""
        try:
            return max(0.0, float(self.get("workers.stagger_ms", 100)) / 1000.0)
        except (ValueError, TypeError):
            return 0.1

    @property
    def thumbnail_size(self) -> int:
        try:
            return max(1, int(self.get("thumbnails.size", 200)))
        except (ValueError, TypeError):
            return 200


def _lookup(node: Any, key: str) -> tuple[bool, Any]:
    for part in key.split("."):
        if isinstance(node, dict) and part in node:
            node = node[part]
        else:
            return False, None
    return True, node
