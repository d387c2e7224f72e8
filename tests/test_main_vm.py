from __future__ import annotations

from pathlib import Path

import pytest

from app.viewmodels.main_vm import MainVM
from core.models import ExportFormat, ImportMode
from core.services.interfaces import UpscaleResult
from core.services.worker_pool import WorkerPool
from infrastructure.delete_service import DeleteService
from infrastructure.export_service import ExportService
from infrastructure.image_service import ImageService
from infrastructure.settings import JsonSettings


@pytest.fixture
def album(tmp_path, make_image) -> Path:
    root = tmp_path / "album"
    (root / "raw").mkdir(parents=True)
    make_image(root / "b.jpg")
    make_image(root / "a.jpg")
    (root / "notes.txt").write_text("not a photo", encoding="utf-8")
    return root


@pytest.fixture
def vm(tmp_path):
    model = MainVM(
        ImageService(),
        pool=WorkerPool(2),
        exporter=ExportService(worker_count=1, stagger_delay=0.0),
        deleter=DeleteService(log_dir=str(tmp_path / "logs")),
    )
    yield model
    model.close()


def _names(vm: MainVM) -> list[str]:
    return [e.display_name for e in vm.files]


def test_load_directory_lists_folders_then_sorted_images(vm, album):
    count = vm.load_directory(str(album))

    assert count == 2
    assert [e.display_name for e in vm.entries] == ["raw", "a.jpg", "b.jpg"]
    assert [e.display_order for e in vm.entries] == [0, 1, 2]
    assert vm.entries[0].is_container
    assert not vm.has_unsaved_changes


def test_load_directory_detects_prefix(vm, tmp_path, make_image):
    for name in ("Trip-001.jpg", "Trip-002.jpg"):
        make_image(tmp_path / "trip" / name)
    vm.load_directory(str(tmp_path / "trip"))
    assert vm.rename_prefix == "Trip"


def test_thumbnails_are_applied_on_the_calling_thread(vm, album):
    vm.load_directory(str(album))
    assert vm.files[0].thumbnail is None

    assert vm.wait_for_thumbnails(timeout=10)
    assert vm.apply_thumbnail_outcomes() == 2
    assert all(e.thumbnail is not None for e in vm.files)
    assert all(row.has_thumbnail for row in vm.rows() if not row.is_folder)


def test_outcomes_for_renamed_entries_are_dropped(vm, album):
    vm.load_directory(str(album))
    assert vm.wait_for_thumbnails(timeout=10)

    assert vm.apply_rename("Set").success
    assert vm.apply_thumbnail_outcomes() == 0


def test_reorder_then_rename(vm, album):
    vm.load_directory(str(album))

    vm.move_entry(2, 1)

    assert vm.has_unsaved_changes
    assert _names(vm) == ["b.jpg", "a.jpg"]
    result = vm.apply_rename("Trip")
    assert result.success
    assert vm.status_message == "Successfully renamed 2 file(s)."
    assert _names(vm) == ["Trip-00001.jpg", "Trip-00002.jpg"]
    assert not vm.has_unsaved_changes
    assert sorted(p.name for p in album.iterdir()) == [
        "Trip-00001.jpg",
        "Trip-00002.jpg",
        "notes.txt",
        "raw",
    ]


def test_failed_rename_keeps_unsaved_flag(vm, album):
    vm.load_directory(str(album))
    vm.move_entry(1, 2)

    result = vm.apply_rename("bad/prefix")

    assert not result.success
    assert vm.has_unsaved_changes


def test_import_keeps_folders_first(vm, album, tmp_path, make_image):
    vm.load_directory(str(album))
    new = make_image(tmp_path / "elsewhere" / "c.png")
    vm.rename_prefix = "Trip"

    result = vm.import_files([str(new)], ImportMode.DISTRIBUTE)

    assert result.success
    assert vm.entries[0].display_name == "raw"
    assert [e.display_order for e in vm.entries] == [0, 1, 2, 3]
    assert _names(vm) == ["Trip-00001.jpg", "Trip-00002.png", "Trip-00003.jpg"]
    assert vm.wait_for_thumbnails(timeout=10)
    vm.apply_thumbnail_outcomes()
    assert vm.files[1].thumbnail is not None


def test_import_without_directory():
    model = MainVM(pool=WorkerPool(1))
    try:
        result = model.import_files(["/tmp/x.jpg"])
    finally:
        model.close()
    assert not result.success
    assert model.status_message == "No directory loaded."


def test_delete_entries_renumbers(vm, album, mocker):
    mocker.patch("infrastructure.delete_service.send2trash")
    vm.load_directory(str(album))
    first = vm.files[0]

    result = vm.delete_entries([first])

    assert result.success_paths == [first.path]
    assert _names(vm) == ["b.jpg"]
    assert [e.display_order for e in vm.entries] == [0, 1]
    assert vm.status_message == "Deleted 1 file(s)"


def test_export_entries(vm, album):
    vm.load_directory(str(album))

    result = vm.export_entries(ExportFormat.PNG)

    assert result.success
    assert sorted(p.name for p in (album / "PNG").iterdir()) == ["a.png", "b.png"]
    assert vm.status_message.startswith("Successfully exported 2 photo(s)")


def test_upscale_hands_over_final_paths(tmp_path, album, mocker):
    upscaler = mocker.Mock()
    upscaler.upscale.return_value = UpscaleResult(True, "done")
    model = MainVM(pool=WorkerPool(1), upscaler=upscaler)
    try:
        model.load_directory(str(album))
        result = model.upscale_entries(str(tmp_path / "out"))
    finally:
        model.close()

    assert result.success
    upscaler.upscale.assert_called_once_with(
        [str(album / "a.jpg"), str(album / "b.jpg")], str(tmp_path / "out")
    )


def test_rows_expose_entry_details(vm, album):
    vm.load_directory(str(album))
    rows = vm.rows()
    assert [r.position_label for r in rows] == ["1", "2", "3"]
    assert rows[0].is_folder and rows[0].size_bytes == 0
    assert rows[1].file_name == "a.jpg"
    assert rows[1].folder_path == str(album)
    assert rows[1].size_bytes > 0


def test_needs_rename(vm, tmp_path, make_image):
    for name in ("Day-00001.jpg", "Day-00002.jpg"):
        make_image(tmp_path / "day" / name)
    vm.load_directory(str(tmp_path / "day"))

    assert vm.rename_prefix == "Day"
    assert not vm.needs_rename
    vm.move_entry(0, 1)
    assert vm.needs_rename


def test_update_display_order_follows_list_order(vm, album):
    vm.load_directory(str(album))
    vm.entries.reverse()

    vm.update_display_order()

    assert _names(vm) == ["b.jpg", "a.jpg"]
    assert vm.has_unsaved_changes


def test_default_exporter_uses_configured_stagger(tmp_path, mocker):
    settings_file = tmp_path / "settings.json"
    settings_file.write_text(
        '{"workers": {"count": 3, "stagger_ms": 250}, "export": {"quality": 75}}',
        encoding="utf-8",
    )
    exporter_cls = mocker.patch("app.viewmodels.main_vm.ExportService")

    model = MainVM(settings=JsonSettings(str(settings_file)), pool=WorkerPool(1))
    model.close()

    exporter_cls.assert_called_once_with(3, 0.25, quality=75)
