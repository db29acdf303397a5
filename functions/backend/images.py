"""
Image preparation for uploads.
"""

from __future__ import annotations

import io

from PIL import Image, UnidentifiedImageError

JPEG_CONTENT_TYPE = "image/jpeg"


class ImageEncodingError(Exception):
    """Raised when uploaded bytes cannot be read as an image."""


def encode_jpeg(image_bytes: bytes, quality: int = 80) -> bytes:
    """
    Re-encodes any Pillow-readable image as JPEG.

    Transparency is flattened onto white since JPEG has no alpha channel.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            image.load()
            if image.mode in ("RGBA", "LA") or (
                image.mode == "P" and "transparency" in image.info
            ):
                rgba = image.convert("RGBA")
                background = Image.new("RGB", rgba.size, (255, 255, 255))
                background.paste(rgba, mask=rgba.split()[-1])
                image = background
            elif image.mode != "RGB":
                image = image.convert("RGB")
            output = io.BytesIO()
            image.save(output, format="JPEG", quality=quality)
            return output.getvalue()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageEncodingError("Failed to process image") from e
