from __future__ import annotations

from PIL import Image
import pytest

from core.models import ExportFormat, OverwriteOption, PhotoEntry
from core.services.worker_pool import CancellationToken
from infrastructure.export_service import ExportService


@pytest.fixture
def exporter() -> ExportService:
    return ExportService(worker_count=2, stagger_delay=0.0)


@pytest.fixture
def photos(tmp_path, make_image) -> list[PhotoEntry]:
    paths = [
        make_image(tmp_path / "a.png", mode="RGBA"),
        make_image(tmp_path / "b.jpg"),
    ]
    return [PhotoEntry(path=str(p), display_order=i) for i, p in enumerate(paths)]


def test_export_to_webp(tmp_path, exporter, photos):
    result = exporter.export(photos, str(tmp_path), ExportFormat.WEBP)

    out = tmp_path / "WebP"
    assert result.success
    assert result.output_dir == str(out)
    assert sorted(p.name for p in out.iterdir()) == ["a.webp", "b.webp"]
    assert result.message.startswith("Successfully exported 2 photo(s) to WebP format")
    with Image.open(out / "a.webp") as im:
        assert im.size == (40, 20)


def test_export_to_jpg_flattens_alpha(tmp_path, exporter, photos):
    result = exporter.export(photos, str(tmp_path), ExportFormat.JPG)

    assert result.success
    with Image.open(tmp_path / "JPG" / "a.jpg") as im:
        assert im.mode == "RGB"
        assert im.format == "JPEG"


def test_skip_existing_outputs(tmp_path, exporter, photos):
    (tmp_path / "PNG").mkdir()
    (tmp_path / "PNG" / "a.png").write_bytes(b"keep me")
    asked: list[list[str]] = []

    def decide(names):
        asked.append(names)
        return OverwriteOption.SKIP_EXISTING

    result = exporter.export(photos, str(tmp_path), ExportFormat.PNG, overwrite_decider=decide)

    assert asked == [["a.png"]]
    assert result.success
    assert result.skipped == [photos[0].path]
    assert len(result.exported) == 1
    assert result.message == "Export complete: 1 exported, 1 skipped of 2 photo(s)."
    assert (tmp_path / "PNG" / "a.png").read_bytes() == b"keep me"


def test_cancel_decision_aborts(tmp_path, exporter, photos):
    (tmp_path / "WebP").mkdir()
    (tmp_path / "WebP" / "b.webp").write_bytes(b"old")

    result = exporter.export(
        photos, str(tmp_path), ExportFormat.WEBP, overwrite_decider=lambda _: OverwriteOption.CANCEL
    )

    assert not result.success
    assert result.message == "Export cancelled by user."
    assert sorted(p.name for p in (tmp_path / "WebP").iterdir()) == ["b.webp"]


def test_corrupt_file_is_reported_as_failed(tmp_path, exporter, photos):
    bad = tmp_path / "bad.jpg"
    bad.write_bytes(b"definitely not a jpeg")
    entries = photos + [PhotoEntry(path=str(bad), display_order=2)]

    result = exporter.export(entries, str(tmp_path), ExportFormat.WEBP)

    assert result.success
    assert [name for name, _ in result.failed] == ["bad.jpg"]
    assert result.message.startswith("Export complete: 2 exported, 1 failed of 3 photo(s).")
    assert "Failed files:\nbad.jpg:" in result.message


def test_progress_reports_every_file(tmp_path, exporter, photos):
    calls: list[tuple[int, int, str]] = []

    exporter.export(photos, str(tmp_path), ExportFormat.PNG, progress=lambda *a: calls.append(a))

    assert calls[-1] == (2, 2, "Complete")
    assert sorted(c[0] for c in calls[:-1]) == [1, 2]


def test_cancelled_token_exports_nothing(tmp_path, exporter, photos):
    token = CancellationToken()
    token.cancel()

    result = exporter.export(photos, str(tmp_path), ExportFormat.WEBP, token=token)

    assert not result.success
    assert result.message == "Export cancelled."
    assert list((tmp_path / "WebP").iterdir()) == []


def test_nothing_to_export(tmp_path, exporter):
    folder = PhotoEntry(path=str(tmp_path), is_container=True)
    assert exporter.export([folder], str(tmp_path), ExportFormat.PNG).message == "No photos to export."


def test_invalid_directory(tmp_path, exporter, photos):
    result = exporter.export(photos, str(tmp_path / "missing"), ExportFormat.PNG)
    assert result.message == "Invalid directory path."
