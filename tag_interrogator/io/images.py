"""Read image files into transport-ready payloads."""

from __future__ import annotations

from pathlib import Path

from PIL import Image, UnidentifiedImageError

from ..models.base import EncodedImage


def encode_image_file(path: Path) -> EncodedImage:
    """Return the raw bytes of ``path`` with the mime type Pillow detects."""
    path = path.expanduser()
    if not path.is_file():
        raise FileNotFoundError(path)
    data = path.read_bytes()
    try:
        with Image.open(path) as image:
            image_format = image.format
    except UnidentifiedImageError as exc:
        raise ValueError(f"{path} is not a recognised image file.") from exc
    mime_type = Image.MIME.get(image_format or "", "application/octet-stream")
    return EncodedImage(data=data, mime_type=mime_type, filename=path.name)
