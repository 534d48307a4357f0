"""
Data models for the editable page sequence.
"""
from dataclasses import dataclass
from typing import Tuple

VALID_ROTATIONS = (0, 90, 180, 270)


@dataclass
class ViewPage:
    """
    One slot in the editable page sequence.

    ``view_page_id`` is assigned once and never changes; canvases and undo
    history are keyed by it.
    """
    view_page_id: str
    document_id: str
    source_page_number: int
    rotation: int = 0

    def __post_init__(self):
        if self.rotation not in VALID_ROTATIONS:
            raise ValueError(f"Invalid rotation: {self.rotation}")
        if self.source_page_number < 1:
            raise ValueError(f"Page numbers are 1-based, got {self.source_page_number}")

    def rotate(self) -> None:
        self.rotation = (self.rotation + 90) % 360

    @property
    def source(self) -> Tuple[str, int]:
        return self.document_id, self.source_page_number
