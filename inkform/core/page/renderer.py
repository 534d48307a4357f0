"""
Page rasterizer backed by PyMuPDF.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Tuple

import fitz  # PyMuPDF
from PyQt5.QtGui import QImage

from inkform.core.document.registry import DocumentRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedPage:
    image: QImage
    width: int
    height: int


class PageRenderer:
    """
    Renders source pages to images.

    Output depends only on (document, page, scale, rotation), so results are
    kept in a small least-recently-used cache per key.
    """

    def __init__(self, registry: DocumentRegistry, max_cache_size: int = 8):
        self.registry = registry
        self._docs: Dict[str, fitz.Document] = {}
        self._cache: Dict[Tuple[str, int, float, int], RenderedPage] = {}
        self._max_cache_size = max_cache_size

    def _doc(self, document_id: str) -> fitz.Document:
        doc = self._docs.get(document_id)
        if doc is None:
            doc = self.registry.get(document_id).open()
            self._docs[document_id] = doc
        return doc

    def page_size(self, document_id: str, page_number: int) -> Tuple[float, float]:
        """Visible size in points of a 1-based page, including its own rotation."""
        rect = self._doc(document_id)[page_number - 1].rect
        return rect.width, rect.height

    def render_pixmap(self, document_id: str, page_number: int, scale: float,
                      rotation: int = 0) -> fitz.Pixmap:
        """
        Rasterize a page.

        Args:
            document_id: Registered document id
            page_number: 1-based page number
            scale: Pixels per point
            rotation: Extra clockwise rotation on top of the page's own

        Returns:
            RGB pixmap
        """
        page = self._doc(document_id)[page_number - 1]
        mat = fitz.Matrix(scale, scale).prerotate(rotation % 360)
        return page.get_pixmap(matrix=mat, alpha=False)

    def render(self, document_id: str, page_number: int, scale: float,
               rotation: int = 0) -> RenderedPage:
        """Rasterize a page into a QImage."""
        key = (document_id, page_number, round(scale, 4), rotation % 360)
        cached = self._cache.pop(key, None)
        if cached is not None:
            # Most recently used goes last
            self._cache[key] = cached
            return cached

        pix = self.render_pixmap(document_id, page_number, scale, rotation)
        # Copy so the image owns its pixels once the pixmap is gone
        image = QImage(
            pix.samples, pix.width, pix.height, pix.stride, QImage.Format_RGB888
        ).copy()
        rendered = RenderedPage(image=image, width=pix.width, height=pix.height)

        self._cache[key] = rendered
        if len(self._cache) > self._max_cache_size:
            del self._cache[next(iter(self._cache))]
        return rendered

    def forget(self, document_id: str) -> None:
        """Drop the open handle and cached images of one document."""
        doc = self._docs.pop(document_id, None)
        if doc is not None:
            doc.close()
        self._cache = {k: v for k, v in self._cache.items() if k[0] != document_id}

    def close(self) -> None:
        for doc in self._docs.values():
            doc.close()
        self._docs.clear()
        self._cache.clear()
