"""Image normalization helpers.

Pure CPU work with Pillow. Callers on the event loop should wrap these in
``asyncio.to_thread``.
"""

from __future__ import annotations

import logging
from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

_JPEG_QUALITY = 90


def sniff_extension(data: bytes) -> str:
    """Guess a file extension from magic bytes.

    Used to name staged files so external tools probe them correctly.

    Args:
        data: Encoded image bytes

    Returns:
        Extension including the dot, or ``.img`` if unrecognized

    Example:
        >>> sniff_extension(b"\\xff\\xd8\\xff\\xe0")
        '.jpg'
    """
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return ".png"
    if data[:3] == b"\xff\xd8\xff":
        return ".jpg"
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return ".webp"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return ".gif"
    if data[:2] == b"BM":
        return ".bmp"
    return ".img"


_MEDIA_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
}


def sniff_media_type(data: bytes, default: str = "image/jpeg") -> str:
    """Guess a MIME type from magic bytes, falling back to ``default``."""
    return _MEDIA_TYPES.get(sniff_extension(data), default)


def fit_to_jpeg(data: bytes, width: int, height: int) -> bytes:
    """Scale to cover ``width`` x ``height``, center-crop, and encode as JPEG.

    Args:
        data: Encoded source image (any Pillow-readable format)
        width: Target width in pixels
        height: Target height in pixels

    Returns:
        JPEG bytes of exactly the target size

    Raises:
        ValueError: If the bytes are not a decodable image or size is invalid
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Target size must be positive, got {width}x{height}")

    try:
        img: Image.Image = Image.open(BytesIO(data))
        img = ImageOps.exif_transpose(img)
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Unreadable image data: {e}") from e

    if img.mode != "RGB":
        img = img.convert("RGB")

    if img.size != (width, height):
        logger.debug("Fitting image from %s to %dx%d", img.size, width, height)
        img = ImageOps.fit(img, (width, height), Image.Resampling.LANCZOS)

    buf = BytesIO()
    img.save(buf, "JPEG", quality=_JPEG_QUALITY)
    return buf.getvalue()
