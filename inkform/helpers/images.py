"""
Raster image sniffing for placement and export.
"""
from typing import Tuple

import fitz

from inkform.core.errors import UnsupportedImageError

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
JPEG_MAGIC = b"\xff\xd8\xff"


def sniff_image_format(data: bytes) -> str:
    """
    Identify PNG or JPEG bytes by their magic number.

    Returns:
        ``"png"`` or ``"jpeg"``

    Raises:
        UnsupportedImageError: for anything else
    """
    if data and data.startswith(PNG_MAGIC):
        return "png"
    if data and data.startswith(JPEG_MAGIC):
        return "jpeg"
    raise UnsupportedImageError("Image data is neither PNG nor JPEG")


def image_size(data: bytes) -> Tuple[int, int]:
    """Pixel width and height of PNG/JPEG bytes."""
    sniff_image_format(data)
    pix = fitz.Pixmap(data)
    return pix.width, pix.height
