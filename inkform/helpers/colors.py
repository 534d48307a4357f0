"""
Colour string parsing for export.
"""
import re
from typing import Optional, Tuple

from PyQt5.QtGui import QColor

RGB = Tuple[float, float, float]

_RGB_PATTERN = re.compile(r"rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)")


def parse_color(color: Optional[str], default: RGB = (0.0, 0.0, 0.0)) -> RGB:
    """
    Parse a hex, rgb()/rgba() or named colour into 0-1 channels.

    Args:
        color: Colour string such as ``#ff0000``, ``rgb(255, 0, 0)`` or ``red``
        default: Returned for empty or unrecognised input

    Returns:
        (r, g, b) tuple with each channel in 0-1
    """
    if not color:
        return default
    color = color.strip()

    if color.startswith('#'):
        hex_part = color[1:]
        if len(hex_part) == 3:
            hex_part = ''.join(c * 2 for c in hex_part)
        try:
            return (
                int(hex_part[0:2], 16) / 255,
                int(hex_part[2:4], 16) / 255,
                int(hex_part[4:6], 16) / 255,
            )
        except ValueError:
            return default

    match = _RGB_PATTERN.match(color)
    if match:
        return tuple(min(int(v), 255) / 255 for v in match.groups())

    if QColor.isValidColor(color):
        qcolor = QColor(color)
        return (qcolor.redF(), qcolor.greenF(), qcolor.blueF())

    return default


def is_transparent(color: Optional[str]) -> bool:
    """True for empty, ``transparent`` or fully transparent rgba() colours."""
    if not color:
        return True
    color = color.strip().lower()
    if color in ('transparent', 'none'):
        return True
    if color.startswith('rgba('):
        parts = color[5:].rstrip(')').split(',')
        if len(parts) == 4:
            try:
                return float(parts[3]) == 0
            except ValueError:
                return False
    return False
