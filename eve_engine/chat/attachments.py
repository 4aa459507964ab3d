"""Turn local image files into data-URL attachments."""

from __future__ import annotations

import base64
from io import BytesIO
from pathlib import Path

from PIL import Image

from ..models import decode_data_url

_SUFFIX_BY_MIME = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


def _guess_mime(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix in {".jpg", ".jpeg"}:
        return "image/jpeg"
    if suffix == ".webp":
        return "image/webp"
    return "image/png"


def prepare_attachment_bytes(path: Path, *, max_dim: int = 1024) -> tuple[bytes, str]:
    """Return (bytes, mime_type), downscaled and re-encoded to JPEG when Pillow can read the file."""
    try:
        with Image.open(path) as image:
            # Flatten alpha for JPEG.
            rgba = image.convert("RGBA")
            background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
            background.alpha_composite(rgba)
            rgb = background.convert("RGB")
            rgb.thumbnail((max_dim, max_dim))
            buf = BytesIO()
            rgb.save(buf, format="JPEG", quality=90)
            return buf.getvalue(), "image/jpeg"
    except OSError:
        return path.read_bytes(), _guess_mime(path)


def load_attachment(path: Path, *, max_dim: int = 1024) -> str:
    if not path.exists():
        raise FileNotFoundError(path)
    data, mime = prepare_attachment_bytes(path, max_dim=max_dim)
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def save_inline_image(image: str, out_dir: Path, stem: str) -> Path | None:
    """Write a data-URL image under `out_dir`; returns None for remote references."""
    decoded = decode_data_url(image)
    if decoded is None:
        return None
    mime, data = decoded
    out_dir.mkdir(parents=True, exist_ok=True)
    target = out_dir / f"{stem}{_SUFFIX_BY_MIME.get(mime, '.png')}"
    target.write_bytes(data)
    return target
