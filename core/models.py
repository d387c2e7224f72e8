"""Core domain models for ordered photo batches."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import os
from typing import Any


@dataclass(eq=False)
class PhotoEntry:
    """A single file or folder placeholder in the ordered batch.

    Entries compare by identity: two entries pointing at the same path are still
    distinct items of the collection.
    """

    path: str
    display_order: int = 0
    is_container: bool = False
    thumbnail: Any | None = None
    display_name: str = ""

    def __post_init__(self) -> None:
        if not self.display_name:
            self.display_name = os.path.basename(self.path)

    @property
    def extension(self) -> str:
        """Suffix of the current path, original case preserved."""
        return os.path.splitext(self.path)[1]

    @property
    def stem(self) -> str:
        """File name without its extension."""
        return os.path.splitext(self.display_name)[0]

    def set_path(self, new_path: str) -> None:
        """Update `path` and keep `display_name` in sync."""
        self.path = new_path
        self.display_name = os.path.basename(new_path)


@dataclass(frozen=True)
class RenameOperation:
    """One planned rename of `entry` from `source_path` to `final_path`."""

    source_path: str
    final_path: str
    entry: PhotoEntry

    @property
    def is_noop(self) -> bool:
        """True when the entry already carries its final name."""
        return self.source_path == self.final_path


@dataclass(frozen=True)
class MergePlanItem:
    """Where a single existing or new file ends up after a merge."""

    source_path: str
    is_new_file: bool
    final_index: int


@dataclass
class MergePlan:
    """Ordered merge placements covering indices `0..total-1`."""

    items: list[MergePlanItem] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    @property
    def new_indices(self) -> list[int]:
        """Final indices claimed by newly introduced files."""
        return [it.final_index for it in self.items if it.is_new_file]

    @property
    def existing_paths(self) -> list[str]:
        """Paths of existing entries in their final order."""
        return [it.source_path for it in self.items if not it.is_new_file]


class ImportMode(Enum):
    """Placement policy for files merged into an existing batch."""

    APPEND = "append"
    DISTRIBUTE = "distribute"


class OverwriteOption(Enum):
    """Answer of an overwrite decision callback."""

    OVERWRITE_ALL = "overwrite_all"
    SKIP_EXISTING = "skip_existing"
    CANCEL = "cancel"


class ExportFormat(Enum):
    """Target formats for batch conversion: (folder name, extension, Pillow format)."""

    WEBP = ("WebP", ".webp", "WEBP")
    PNG = ("PNG", ".png", "PNG")
    JPG = ("JPG", ".jpg", "JPEG")

    @property
    def folder_name(self) -> str:
        return self.value[0]

    @property
    def extension(self) -> str:
        return self.value[1]

    @property
    def pillow_format(self) -> str:
        return self.value[2]
