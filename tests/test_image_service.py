from __future__ import annotations

import pytest

from core.errors import DecodeError
from infrastructure.image_service import ImageService


def test_decode_bounds_the_longest_side(tmp_path, make_image):
    path = make_image(tmp_path / "wide.png", size=(400, 200))

    img = ImageService().decode(str(path), 100)

    assert img.size == (100, 50)


def test_decode_is_cached(tmp_path, make_image):
    path = str(make_image(tmp_path / "a.jpg"))
    service = ImageService()

    assert service.decode(path, 32) is service.decode(path, 32)
    assert service.decode(path, 16) is not service.decode(path, 32)


def test_missing_file(tmp_path):
    with pytest.raises(DecodeError, match="file does not exist"):
        ImageService().decode(str(tmp_path / "nope.jpg"), 64)


def test_unsupported_extension(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello", encoding="utf-8")
    with pytest.raises(DecodeError, match="unsupported"):
        ImageService().decode(str(path), 64)


def test_corrupt_image(tmp_path):
    path = tmp_path / "broken.jpg"
    path.write_bytes(b"\xff\xd8 not really")
    with pytest.raises(DecodeError) as info:
        ImageService().decode(str(path), 64)
    assert info.value.path == str(path)


def test_cache_capacity_comes_from_settings(tmp_path, make_image, mocker):
    settings = mocker.Mock()
    settings.get.return_value = 1
    service = ImageService(settings)
    first = str(make_image(tmp_path / "1.png"))
    second = str(make_image(tmp_path / "2.png"))

    one = service.decode(first, 10)
    service.decode(second, 10)

    assert service.decode(first, 10) is not one
