"""
Per-page object store for overlay annotations.
"""
from typing import Iterator, List, Optional

from PyQt5.QtCore import QObject, pyqtSignal

from .models import Annotation


class AnnotationCanvas(QObject):
    """
    Ordered store of the annotations on one view page.

    List order is z-order (last is topmost). Every structural change is
    announced through a signal so the owner can record history.
    """

    object_added = pyqtSignal(object)
    object_removed = pyqtSignal(object)
    object_modified = pyqtSignal(object)
    selection_changed = pyqtSignal()

    def __init__(self, page_id: str, width: float, height: float, parent=None):
        super().__init__(parent)
        self.page_id = page_id
        self.width = width
        self.height = height
        self._objects: List[Annotation] = []
        self._active: List[Annotation] = []

    def __len__(self) -> int:
        return len(self._objects)

    def __iter__(self) -> Iterator[Annotation]:
        return iter(list(self._objects))

    def __contains__(self, obj: Annotation) -> bool:
        return any(o is obj for o in self._objects)

    def objects(self) -> List[Annotation]:
        return list(self._objects)

    def index_of(self, obj: Annotation) -> int:
        for i, o in enumerate(self._objects):
            if o is obj:
                return i
        return -1

    def find(self, object_id: str) -> Optional[Annotation]:
        for obj in self._objects:
            if obj.object_id == object_id:
                return obj
        return None

    def set_size(self, width: float, height: float) -> None:
        self.width = width
        self.height = height

    # ------------------------------------------------------------------
    # Structural mutations
    # ------------------------------------------------------------------

    def add(self, obj: Annotation, index: Optional[int] = None) -> None:
        if index is None:
            self._objects.append(obj)
        else:
            self._objects.insert(index, obj)
        self.object_added.emit(obj)

    def remove(self, obj: Annotation) -> bool:
        index = self.index_of(obj)
        if index < 0:
            return False
        del self._objects[index]
        if self._drop_from_selection(obj):
            self.selection_changed.emit()
        self.object_removed.emit(obj)
        return True

    def modify(self, obj: Annotation, **attrs) -> bool:
        """
        Update persisted attributes of an object.

        Returns:
            True if at least one attribute actually changed
        """
        if obj not in self:
            return False
        changed = False
        for name, value in attrs.items():
            if not hasattr(obj, name):
                raise AttributeError(f"{obj.kind.value} has no attribute {name!r}")
            if getattr(obj, name) != value:
                setattr(obj, name, value)
                changed = True
        if changed:
            if {'x1', 'y1', 'x2', 'y2', 'points'} & attrs.keys():
                obj.sync_path_bounds()
            self.object_modified.emit(obj)
        return changed

    def move_by(self, obj: Annotation, dx: float, dy: float) -> None:
        if obj not in self or (dx == 0 and dy == 0):
            return
        obj.move_by(dx, dy)
        self.object_modified.emit(obj)

    def bring_to_front(self, obj: Annotation) -> None:
        index = self.index_of(obj)
        if index < 0 or index == len(self._objects) - 1:
            return
        self._objects.append(self._objects.pop(index))
        self.object_modified.emit(obj)

    def send_to_back(self, obj: Annotation) -> None:
        index = self.index_of(obj)
        if index <= 0:
            return
        self._objects.insert(0, self._objects.pop(index))
        self.object_modified.emit(obj)

    def clear(self) -> None:
        """Remove every object, announcing each removal."""
        self.discard_active()
        while self._objects:
            self.object_removed.emit(self._objects.pop())

    def load(self, objects: List[Annotation]) -> None:
        """Replace the whole content, e.g. when replaying history."""
        self.clear()
        for obj in objects:
            self.add(obj)

    # ------------------------------------------------------------------
    # Hit testing and selection
    # ------------------------------------------------------------------

    def object_at(self, x: float, y: float, include_inert: bool = False) -> Optional[Annotation]:
        """Return the topmost object whose bounds contain the point."""
        for obj in reversed(self._objects):
            if not include_inert and not obj.selectable:
                continue
            if obj.bounds().contains_point(x, y):
                return obj
        return None

    def active_objects(self) -> List[Annotation]:
        return list(self._active)

    def active_object(self) -> Optional[Annotation]:
        return self._active[-1] if self._active else None

    def set_active(self, *objs: Annotation) -> None:
        selected = [o for o in objs if o in self and o.selectable]
        if [id(o) for o in selected] == [id(o) for o in self._active]:
            return
        self._active = selected
        self.selection_changed.emit()

    def discard_active(self) -> None:
        if self._active:
            self._active = []
            self.selection_changed.emit()

    def _drop_from_selection(self, obj: Annotation) -> bool:
        before = len(self._active)
        self._active = [o for o in self._active if o is not obj]
        return len(self._active) != before
