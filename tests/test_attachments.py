from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from eve_engine.chat.attachments import load_attachment, save_inline_image
from eve_engine.models import decode_data_url


def test_load_attachment_reencodes_to_jpeg(tmp_path: Path) -> None:
    path = tmp_path / "photo.png"
    Image.new("RGBA", (2048, 1024), (255, 0, 0, 128)).save(path)
    mime, data = decode_data_url(load_attachment(path))
    assert mime == "image/jpeg"
    with Image.open(tmp_path / "photo.png") as original:
        assert original.size == (2048, 1024)
    out = tmp_path / "out.jpg"
    out.write_bytes(data)
    with Image.open(out) as image:
        assert max(image.size) == 1024


def test_load_attachment_passes_through_unreadable_files(tmp_path: Path) -> None:
    path = tmp_path / "blob.webp"
    path.write_bytes(b"not really an image")
    mime, data = decode_data_url(load_attachment(path))
    assert mime == "image/webp"
    assert data == b"not really an image"


def test_load_attachment_missing(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_attachment(tmp_path / "nope.png")


def test_save_inline_image(tmp_path: Path) -> None:
    saved = save_inline_image("data:image/png;base64,aW1n", tmp_path / "images", "m1")
    assert saved == tmp_path / "images" / "m1.png"
    assert saved.read_bytes() == b"img"
    assert save_inline_image("https://img.example/1.png", tmp_path, "m2") is None
