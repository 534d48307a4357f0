"""
Snapshot-based undo/redo for a single page.
"""
import json
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple

from .models import SNAPSHOT_VERSION, Annotation


@dataclass(frozen=True)
class PageSnapshot:
    """Full serialized state of one page's objects, bottom to top."""
    objects: Tuple[dict, ...]
    version: int = SNAPSHOT_VERSION

    @classmethod
    def capture(cls, annotations: Iterable[Annotation]) -> 'PageSnapshot':
        return cls(objects=tuple(ann.to_dict() for ann in annotations))

    def restore(self) -> List[Annotation]:
        """Rebuild fresh annotation objects from this snapshot."""
        if self.version != SNAPSHOT_VERSION:
            raise ValueError(f"Unsupported snapshot version: {self.version}")
        return [Annotation.from_dict(data) for data in self.objects]

    def scaled(self, factor: float) -> 'PageSnapshot':
        """Return a copy with every object rescaled by ``factor``."""
        annotations = self.restore()
        for ann in annotations:
            ann.scale_geometry(factor)
        return PageSnapshot.capture(annotations)

    def __len__(self) -> int:
        return len(self.objects)

    def to_json(self) -> str:
        return json.dumps({'version': self.version, 'objects': list(self.objects)})

    @classmethod
    def from_json(cls, raw: str) -> 'PageSnapshot':
        data = json.loads(raw)
        return cls(objects=tuple(data.get('objects', [])), version=data.get('version', 0))


class UndoRedoStack:
    """
    Manages undo/redo history for one page.

    The top of the undo stack is always the current state, so the stack is
    seeded with the blank page and undo never goes below that baseline.
    """

    def __init__(self, max_size: int = 50):
        """
        Initialize the undo/redo stack.

        Args:
            max_size: Maximum number of states to keep in history
        """
        self.undo_stack: List[PageSnapshot] = []
        self.redo_stack: List[PageSnapshot] = []
        self.max_size = max_size

    def push_state(self, snapshot: PageSnapshot) -> None:
        """
        Push a new current state.

        Args:
            snapshot: State of the page right after a mutation
        """
        self.undo_stack.append(snapshot)

        # A new action invalidates anything that was undone
        self.redo_stack.clear()

        # Limit stack size
        if len(self.undo_stack) > self.max_size:
            self.undo_stack.pop(0)

    @property
    def current(self) -> Optional[PageSnapshot]:
        return self.undo_stack[-1] if self.undo_stack else None

    def can_undo(self) -> bool:
        """Check if undo is available."""
        return len(self.undo_stack) > 1

    def can_redo(self) -> bool:
        """Check if redo is available."""
        return len(self.redo_stack) > 0

    def undo(self) -> Optional[PageSnapshot]:
        """
        Step back one state.

        Returns:
            The state to replay, or None if undo is not available
        """
        if not self.can_undo():
            return None

        self.redo_stack.append(self.undo_stack.pop())
        return self.undo_stack[-1]

    def redo(self) -> Optional[PageSnapshot]:
        """
        Step forward one state.

        Returns:
            The state to replay, or None if redo is not available
        """
        if not self.can_redo():
            return None

        snapshot = self.redo_stack.pop()
        self.undo_stack.append(snapshot)
        return snapshot

    def transform(self, fn: Callable[[PageSnapshot], PageSnapshot]) -> None:
        """Rewrite every stored state, e.g. after the display scale changed."""
        self.undo_stack = [fn(s) for s in self.undo_stack]
        self.redo_stack = [fn(s) for s in self.redo_stack]

    def clear(self) -> None:
        """Clear both stacks."""
        self.undo_stack.clear()
        self.redo_stack.clear()
