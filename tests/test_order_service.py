from __future__ import annotations

import pytest

from core.models import PhotoEntry
from core.services.order_service import OrderService


def _entries(*names: str) -> list[PhotoEntry]:
    return [PhotoEntry(path=f"/p/{n}", display_order=i) for i, n in enumerate(names)]


def _names(entries: list[PhotoEntry]) -> list[str]:
    return [e.display_name for e in entries]


@pytest.mark.parametrize(
    "from_index, to_index, expected",
    [
        (0, 2, ["b", "c", "a", "d"]),
        (3, 1, ["a", "d", "b", "c"]),
        (1, 1, ["a", "b", "c", "d"]),
    ],
)
def test_move_reorders_and_renumbers(from_index, to_index, expected):
    entries = _entries("a", "b", "c", "d")

    OrderService().move(entries, from_index, to_index)

    assert _names(entries) == expected
    assert [e.display_order for e in entries] == [0, 1, 2, 3]


def test_move_out_of_range_raises():
    entries = _entries("a", "b")
    with pytest.raises(IndexError):
        OrderService().move(entries, 0, 2)
    with pytest.raises(IndexError):
        OrderService().move(entries, -1, 0)


def test_sorted_by_order_is_stable_on_ties():
    entries = _entries("a", "b", "c")
    entries[0].display_order = 1
    entries[1].display_order = 1
    entries[2].display_order = 0

    assert _names(OrderService().sorted_by_order(entries)) == ["c", "a", "b"]


def test_files_only_drops_containers():
    entries = _entries("a.jpg", "folder")
    entries[1].is_container = True
    assert _names(OrderService().files_only(entries)) == ["a.jpg"]
