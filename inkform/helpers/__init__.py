"""
Small pure helpers shared by the core modules.
"""
from .colors import is_transparent, parse_color
from .geometry import (
    CanvasRect,
    DocRect,
    canvas_point_to_document,
    canvas_to_document,
    document_to_canvas,
)
from .images import image_size, sniff_image_format

__all__ = [
    'parse_color',
    'is_transparent',
    'CanvasRect',
    'DocRect',
    'canvas_to_document',
    'canvas_point_to_document',
    'document_to_canvas',
    'image_size',
    'sniff_image_format',
]
