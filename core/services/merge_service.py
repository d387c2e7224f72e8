"""Placement planning for files merged into an ordered batch.

Nothing here touches the filesystem or the entry objects: the planner only
decides which final index every existing entry and every new file receives.
"""

from __future__ import annotations

from collections.abc import Sequence

from core.models import ImportMode, MergePlan, MergePlanItem, PhotoEntry
from core.services.order_service import OrderService


def distributed_indices(old_count: int, new_count: int) -> list[int]:
    """Final indices of the new files under the even-spread policy.

    New file `i` lands at `floor((i + 1) * total / (new_count + 1))`, which is
    strictly increasing in `i` and always below `total`.
    """
    total = old_count + new_count
    return [(i + 1) * total // (new_count + 1) for i in range(new_count)]


class BatchMerger:
    """Computes `MergePlan`s under the append and distribute policies."""

    def __init__(self, orderer: OrderService | None = None) -> None:
        self._orderer = orderer or OrderService()

    def plan(
        self, existing: Sequence[PhotoEntry], new_files: Sequence[str], mode: ImportMode
    ) -> MergePlan:
        """Dispatch to the policy named by `mode`."""
        if mode is ImportMode.DISTRIBUTE:
            return self.plan_distribute(existing, new_files)
        return self.plan_append(existing, new_files)

    def plan_append(self, existing: Sequence[PhotoEntry], new_files: Sequence[str]) -> MergePlan:
        """Existing entries first, then the new files in the given order."""
        ordered = self._existing_in_order(existing)
        items = [MergePlanItem(e.path, False, i) for i, e in enumerate(ordered)]
        offset = len(ordered)
        items.extend(MergePlanItem(path, True, offset + i) for i, path in enumerate(new_files))
        return MergePlan(items)

    def plan_distribute(
        self, existing: Sequence[PhotoEntry], new_files: Sequence[str]
    ) -> MergePlan:
        """Spread the new files evenly through the combined sequence."""
        ordered = self._existing_in_order(existing)
        total = len(ordered) + len(new_files)
        slots = dict(zip(distributed_indices(len(ordered), len(new_files)), new_files))

        items: list[MergePlanItem] = []
        old_iter = iter(ordered)
        for final_index in range(total):
            if final_index in slots:
                items.append(MergePlanItem(slots[final_index], True, final_index))
            else:
                items.append(MergePlanItem(next(old_iter).path, False, final_index))
        return MergePlan(items)

    def _existing_in_order(self, existing: Sequence[PhotoEntry]) -> list[PhotoEntry]:
        return self._orderer.sorted_by_order(self._orderer.files_only(existing))
