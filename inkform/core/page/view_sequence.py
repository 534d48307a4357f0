"""
The ordered, editable sequence of view pages.
"""
import dataclasses
import logging
import re
import uuid
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from PyQt5.QtCore import QObject, pyqtSignal

from .models import ViewPage

logger = logging.getLogger(__name__)

PageRange = Tuple[int, int]

_RANGE_PATTERN = re.compile(r"^(\d+)(?:\s*-\s*(\d+))?$")


def parse_page_ranges(text: str, max_page: int) -> List[PageRange]:
    """
    Parse user input such as ``"1-3, 5"`` into inclusive 1-based ranges.

    Reversed ranges are swapped, bounds are clamped to ``1..max_page`` and
    malformed or empty parts are skipped.

    Args:
        text: Comma separated ranges
        max_page: Number of pages available

    Returns:
        List of (start, end) tuples
    """
    ranges: List[PageRange] = []
    for part in (text or "").split(','):
        part = part.strip()
        if not part:
            continue
        match = _RANGE_PATTERN.match(part)
        if not match:
            continue
        a = int(match.group(1))
        b = int(match.group(2)) if match.group(2) else a
        start = max(1, min(a, b))
        end = min(max_page, max(a, b))
        if start <= end:
            ranges.append((start, end))
    return ranges


class ViewSequence(QObject):
    """
    Ordered view pages drawn from one or more source documents.

    Every mutation emits ``sequence_changed``. Ids are never regenerated,
    so state keyed by view page id survives reorders.
    """

    sequence_changed = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self._pages: List[ViewPage] = []

    def __len__(self) -> int:
        return len(self._pages)

    def __iter__(self) -> Iterator[ViewPage]:
        return iter(list(self._pages))

    @property
    def pages(self) -> List[ViewPage]:
        return list(self._pages)

    @property
    def ids(self) -> List[str]:
        return [p.view_page_id for p in self._pages]

    def index_of(self, view_page_id: str) -> int:
        for i, page in enumerate(self._pages):
            if page.view_page_id == view_page_id:
                return i
        return -1

    def get(self, view_page_id: str) -> Optional[ViewPage]:
        index = self.index_of(view_page_id)
        return self._pages[index] if index >= 0 else None

    def _new_id(self, document_id: str, page_number: int, taken: set) -> str:
        view_page_id = f"{document_id}:{page_number}"
        while view_page_id in taken:
            view_page_id = f"{document_id}:{page_number}:{uuid.uuid4().hex[:8]}"
        taken.add(view_page_id)
        return view_page_id

    def _build(self, document, taken: set) -> List[ViewPage]:
        return [
            ViewPage(self._new_id(document.document_id, n, taken), document.document_id, n)
            for n in range(1, document.page_count + 1)
        ]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def load(self, document) -> List[ViewPage]:
        """Replace the sequence with every page of ``document``, unrotated."""
        self._pages = self._build(document, set())
        self.sequence_changed.emit()
        return list(self._pages)

    def append(self, document) -> List[ViewPage]:
        """
        Add every page of ``document`` to the end.

        Returns:
            The new view pages
        """
        new_pages = self._build(document, set(self.ids))
        self._pages.extend(new_pages)
        self.sequence_changed.emit()
        return list(new_pages)

    def reorder(self, from_id: str, to_id: str) -> bool:
        """
        Move ``from_id`` to the position currently held by ``to_id``.

        The target index is taken before removal, so dragging a page forward
        lands it just after the target.

        Returns:
            True if the sequence changed
        """
        if from_id == to_id:
            return False
        from_index = self.index_of(from_id)
        to_index = self.index_of(to_id)
        if from_index < 0 or to_index < 0:
            return False

        page = self._pages.pop(from_index)
        self._pages.insert(to_index, page)
        self.sequence_changed.emit()
        return True

    def delete(self, ids: Iterable[str]) -> List[str]:
        """
        Remove pages by id.

        Returns:
            Ids actually removed; their canvases must be released by the caller
        """
        doomed = set(ids)
        removed = [p.view_page_id for p in self._pages if p.view_page_id in doomed]
        if removed:
            self._pages = [p for p in self._pages if p.view_page_id not in doomed]
            self.sequence_changed.emit()
        return removed

    def rotate(self, ids: Iterable[str]) -> List[str]:
        """Rotate matching pages clockwise by 90 degrees."""
        targets = set(ids)
        rotated = []
        for page in self._pages:
            if page.view_page_id in targets:
                page.rotate()
                rotated.append(page.view_page_id)
        if rotated:
            self.sequence_changed.emit()
        return rotated

    def clear(self) -> None:
        self._pages = []
        self.sequence_changed.emit()

    # ------------------------------------------------------------------
    # Derivations
    # ------------------------------------------------------------------

    def extract_subset(self, ids: Iterable[str]) -> List[ViewPage]:
        """Copies of the selected pages, in sequence order."""
        wanted = set(ids)
        return [dataclasses.replace(p) for p in self._pages if p.view_page_id in wanted]

    def split_by_ranges(self, ranges: Sequence[PageRange]) -> List[List[ViewPage]]:
        """
        Slice the sequence by 1-based inclusive position ranges.

        Returns:
            One list of page copies per non-empty range
        """
        parts = []
        for start, end in ranges:
            part = [dataclasses.replace(p) for p in self._pages[max(start, 1) - 1:end]]
            if part:
                parts.append(part)
        return parts
