"""
Rectangles in canvas space and document space, and the projection between them.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class CanvasRect:
    """Axis-aligned box in canvas pixels, origin top-left."""
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    def contains_point(self, x: float, y: float) -> bool:
        return self.left <= x <= self.right and self.top <= y <= self.bottom

    @classmethod
    def from_points(cls, x1: float, y1: float, x2: float, y2: float) -> "CanvasRect":
        return cls(min(x1, x2), min(y1, y2), abs(x2 - x1), abs(y2 - y1))


@dataclass(frozen=True)
class DocRect:
    """Axis-aligned box in document units, origin bottom-left."""
    x: float
    y: float
    width: float
    height: float

    def to_dict(self) -> dict:
        return {'left': self.x, 'bottom': self.y, 'width': self.width, 'height': self.height}

    def to_top_left(self, page_height: float) -> Tuple[float, float, float, float]:
        """Return (x0, y0, x1, y1) with the origin moved to the top-left corner."""
        y0 = page_height - self.y - self.height
        return (self.x, y0, self.x + self.width, y0 + self.height)


def canvas_to_document(rect: CanvasRect, scale: float, page_height: float) -> DocRect:
    """
    Project a canvas box into document space.

    Args:
        rect: Bounds in canvas pixels at ``scale``
        scale: Display scale the canvas was rendered at
        page_height: Page height in document units

    Returns:
        The same box in document units with the vertical axis flipped
    """
    return DocRect(
        x=rect.left / scale,
        y=page_height - (rect.top + rect.height) / scale,
        width=rect.width / scale,
        height=rect.height / scale,
    )


def canvas_point_to_document(x: float, y: float, scale: float,
                             page_height: float) -> Tuple[float, float]:
    return x / scale, page_height - y / scale


def document_to_canvas(rect: DocRect, scale: float, page_height: float) -> CanvasRect:
    """Inverse of :func:`canvas_to_document`."""
    return CanvasRect(
        left=rect.x * scale,
        top=(page_height - rect.y - rect.height) * scale,
        width=rect.width * scale,
        height=rect.height * scale,
    )
