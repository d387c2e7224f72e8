from __future__ import annotations

import json

import pytest

import main


@pytest.fixture
def settings_file(tmp_path, mocker):
    mocker.patch("main.init_logging")
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"workers": {"count": 1, "stagger_ms": 0}}), encoding="utf-8")
    return str(path)


def test_rename_command(tmp_path, make_image, settings_file, capsys):
    album = tmp_path / "album"
    make_image(album / "x.jpg")
    make_image(album / "y.jpg")

    code = main.main(["--settings", settings_file, "rename", str(album), "--prefix", "Day"])

    assert code == 0
    assert sorted(p.name for p in album.iterdir()) == ["Day-00001.jpg", "Day-00002.jpg"]
    assert "Successfully renamed 2 file(s)." in capsys.readouterr().out


def test_import_command_distributes(tmp_path, make_image, settings_file):
    album = tmp_path / "album"
    for name in ("Day-00001.jpg", "Day-00002.jpg"):
        make_image(album / name)
    extra = make_image(tmp_path / "new" / "z.png")

    code = main.main(
        ["--settings", settings_file, "import", str(album), str(extra), "--distribute"]
    )

    assert code == 0
    assert (album / "Day-00002.png").exists()
    assert (album / "Day-00003.jpg").exists()


def test_export_command(tmp_path, make_image, settings_file):
    album = tmp_path / "album"
    make_image(album / "x.jpg")

    code = main.main(["--settings", settings_file, "export", str(album), "--format", "png"])

    assert code == 0
    assert (album / "PNG" / "x.png").exists()


def test_missing_directory_fails(tmp_path, settings_file, capsys):
    code = main.main(["--settings", settings_file, "rename", str(tmp_path / "nope")])

    assert code == 1
    assert "Error" in capsys.readouterr().err


def test_invalid_prefix_returns_error(tmp_path, make_image, settings_file):
    make_image(tmp_path / "album" / "x.jpg")
    code = main.main(["--settings", settings_file, "rename", str(tmp_path / "album"), "--prefix", "a:b"])
    assert code == 1
