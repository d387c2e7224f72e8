"""Lightweight view model wrapper around `PhotoEntry`."""

from __future__ import annotations

from dataclasses import dataclass
import os

from core.models import PhotoEntry


@dataclass
class PhotoVM:
    """Expose convenient properties for bindings/templates."""

    entry: PhotoEntry

    @property
    def file_name(self) -> str:
        """Base name of the entry path."""
        return self.entry.display_name

    @property
    def folder_path(self) -> str:
        """Folder portion of the entry path."""
        return os.path.dirname(self.entry.path)

    @property
    def size_bytes(self) -> int:
        """File size in bytes (0 for folders or unreadable files)."""
        if self.entry.is_container:
            return 0
        try:
            return int(os.path.getsize(self.entry.path))
        except OSError:
            return 0

    @property
    def position_label(self) -> str:
        """1-based position shown next to the thumbnail."""
        return f"{self.entry.display_order + 1}"

    @property
    def is_folder(self) -> bool:
        return bool(self.entry.is_container)

    @property
    def has_thumbnail(self) -> bool:
        """True once a decoded thumbnail was applied."""
        return self.entry.thumbnail is not None
