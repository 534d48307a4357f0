"""
View pages, their ordering and rendering.
"""
from .models import ViewPage
from .renderer import PageRenderer, RenderedPage
from .view_sequence import ViewSequence, parse_page_ranges

__all__ = [
    "ViewPage",
    "ViewSequence",
    "parse_page_ranges",
    "PageRenderer",
    "RenderedPage",
]
