from __future__ import annotations

import io
from datetime import datetime

import pytest
from PIL import Image

from src.agrivet_admin.agrivet_admin.core.exceptions import NotFoundError, ValidationError
from src.agrivet_admin.agrivet_admin.marketing.storage import ImageStorage


def png_bytes(width=40, height=20):
    buf = io.BytesIO()
    Image.new("RGB", (width, height), (10, 120, 40)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture()
def storage(tmp_path):
    return ImageStorage(
        str(tmp_path),
        url_prefix="/uploads",
        max_bytes=200_000,
        max_width=100,
        clock=lambda: datetime(2026, 3, 12, 10, 0),
    )


def test_upload_stores_under_sanitized_unique_name(storage, tmp_path):
    result = storage.upload("../Rainy Promo!.png", "image/png", png_bytes())

    assert result["path"].startswith("Rainy_Promo_20260312100000_")
    assert result["path"].endswith(".png")
    assert result["url"] == f"/uploads/{result['path']}"
    assert (tmp_path / result["path"]).stat().st_size == result["size"]


def test_wide_images_are_scaled_down(storage, tmp_path):
    result = storage.upload("banner.png", "image/png", png_bytes(400, 100))

    with Image.open(tmp_path / result["path"]) as img:
        assert img.size == (100, 25)


def test_rejects_wrong_type_extension_and_fake_content(storage):
    with pytest.raises(ValidationError):
        storage.upload("notes.txt", "text/plain", b"hello")
    with pytest.raises(ValidationError):
        storage.upload("photo.jpg", "image/png", png_bytes())
    with pytest.raises(ValidationError):
        storage.upload("photo.png", "image/png", b"not really a png")
    with pytest.raises(ValidationError):
        storage.upload("photo.jpg", "image/jpeg", png_bytes())


def test_rejects_oversized_files(tmp_path):
    small = ImageStorage(str(tmp_path), max_bytes=10)

    with pytest.raises(ValidationError) as exc:
        small.upload("a.png", "image/png", png_bytes())
    assert "less than 10 Bytes" in str(exc.value)


def test_delete_accepts_url_and_refuses_escaping_paths(storage, tmp_path):
    result = storage.upload("a.png", "image/png", png_bytes())

    storage.delete(result["url"])
    assert not (tmp_path / result["path"]).exists()

    with pytest.raises(NotFoundError):
        storage.delete(result["path"])
    with pytest.raises(ValidationError):
        storage.delete("../outside.png")
