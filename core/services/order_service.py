"""Ordering helpers for `PhotoEntry` collections.

The service keeps `display_order` contiguous and stable without touching the
filesystem; renames and merges consume its sorted views.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from core.models import PhotoEntry


class OrderService:
    """Provides sorting and reordering utilities for entry lists."""

    def sorted_by_order(self, entries: Iterable[PhotoEntry]) -> list[PhotoEntry]:
        """Stable sort by `display_order`; ties keep their current relative order."""
        return sorted(entries, key=lambda e: e.display_order)

    def files_only(self, entries: Iterable[PhotoEntry]) -> list[PhotoEntry]:
        """Drop folder placeholders."""
        return [e for e in entries if not e.is_container]

    def renumber(self, entries: Sequence[PhotoEntry]) -> None:
        """Assign `display_order = index` following list order, in place."""
        for index, entry in enumerate(entries):
            entry.display_order = index

    def move(self, entries: list[PhotoEntry], from_index: int, to_index: int) -> None:
        """Move the entry at `from_index` to `to_index` and renumber.

        Args:
            entries: Collection mutated in place.
            from_index: Current position of the dragged entry.
            to_index: Position the entry should occupy afterwards.

        Raises:
            IndexError: Either index is outside the collection.
        """
        count = len(entries)
        if not 0 <= from_index < count or not 0 <= to_index < count:
            raise IndexError(f"move({from_index}, {to_index}) outside 0..{count - 1}")
        if from_index != to_index:
            entry = entries.pop(from_index)
            entries.insert(to_index, entry)
        self.renumber(entries)
