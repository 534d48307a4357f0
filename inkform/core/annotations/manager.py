"""
Main annotation manager that coordinates all annotation operations.

One canvas and one undo/redo history exist per view page, both keyed by
the view page id so they follow the page across reorders.
"""
import dataclasses
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from functools import partial
from typing import Dict, Iterable, List, Optional, Sequence

from PyQt5.QtCore import QObject, pyqtSignal

from inkform.config import EditorConfig
from inkform.core.errors import DuplicateFieldNameError, InvalidFieldValueError
from inkform.helpers.images import image_size, sniff_image_format

from .canvas import AnnotationCanvas
from .mode import InteractionMode, ModeController, interactivity_for
from .models import Annotation, AnnotationKind, SignatureMeta
from .tools import (
    DEFAULT_SIGNATURE_LABEL,
    DRAG_TOOLS,
    FIELD_FONT_SIZE,
    PLACEMENT_TOOLS,
    STICKY_TOOLS,
    Tool,
    build_placement,
    drag_too_small,
    fit_text_box,
    new_radio_value,
    start_drag,
    update_drag,
)
from .undo_redo import PageSnapshot, UndoRedoStack

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "y", "x", "on", "checked"}

# ToolSettings keys that restyle a selected text object, and the attribute they map to
_TEXT_SETTING_ATTRS = {
    'text_color': 'fill',
    'font_family': 'font_family',
    'font_weight': 'font_weight',
    'font_style': 'font_style',
    'text_align': 'text_align',
}


@dataclasses.dataclass
class _DragState:
    page_id: str
    obj: Annotation
    start_x: float
    start_y: float


class AnnotationManager(QObject):
    """Manages the annotation canvases of every view page with undo/redo support."""

    history_changed = pyqtSignal(str)
    tool_changed = pyqtSignal(object)
    value_editor_requested = pyqtSignal(str, object, object)
    option_selector_requested = pyqtSignal(str, object, object)
    signature_requested = pyqtSignal(str, object)

    def __init__(self, config: Optional[EditorConfig] = None,
                 mode_controller: Optional[ModeController] = None, parent=None):
        super().__init__(parent)
        self.config = config or EditorConfig()
        self.settings = dataclasses.replace(self.config.tool_settings)
        self.mode_controller = mode_controller or ModeController(self)
        self.mode_controller.mode_changed.connect(self._on_mode_changed)

        self.canvases: Dict[str, AnnotationCanvas] = {}
        self.histories: Dict[str, UndoRedoStack] = {}
        self.active_page_id: Optional[str] = None
        self.active_tool = Tool.SELECT
        self.current_scale = 1.0

        self._suppressed: Dict[str, int] = {}
        self._drag: Optional[_DragState] = None
        self._pending_image: Optional[bytes] = None
        self._signature_image: Optional[bytes] = None
        self._signature_meta: Optional[SignatureMeta] = None

    @property
    def mode(self) -> InteractionMode:
        return self.mode_controller.mode

    # ------------------------------------------------------------------
    # Page lifecycle
    # ------------------------------------------------------------------

    def create_canvas(self, page_id: str, width: float, height: float) -> AnnotationCanvas:
        """
        Create the canvas for a view page, or resize the existing one.

        Args:
            page_id: View page id
            width: Canvas width in pixels
            height: Canvas height in pixels

        Returns:
            The page's canvas
        """
        canvas = self.canvases.get(page_id)
        if canvas is not None:
            canvas.set_size(width, height)
            return canvas

        canvas = AnnotationCanvas(page_id, width, height, self)
        canvas.object_added.connect(partial(self._on_canvas_changed, page_id))
        canvas.object_removed.connect(partial(self._on_canvas_changed, page_id))
        canvas.object_modified.connect(partial(self._on_canvas_changed, page_id))
        self.canvases[page_id] = canvas

        history = UndoRedoStack(self.config.history_limit)
        history.push_state(PageSnapshot.capture([]))
        self.histories[page_id] = history

        if self.active_page_id is None:
            self.active_page_id = page_id
        return canvas

    def remove_page(self, page_id: str) -> None:
        """Release the canvas and history of a deleted view page."""
        canvas = self.canvases.pop(page_id, None)
        self.histories.pop(page_id, None)
        self._suppressed.pop(page_id, None)
        if canvas is None:
            return
        if self._drag is not None and self._drag.page_id == page_id:
            self._drag = None
        canvas.blockSignals(True)
        canvas.setParent(None)
        if self.active_page_id == page_id:
            self.active_page_id = next(iter(self.canvases), None)

    def clear_all(self) -> None:
        for page_id in list(self.canvases):
            self.remove_page(page_id)
        self.active_page_id = None

    def set_active_page(self, page_id: Optional[str]) -> None:
        if page_id is not None and page_id not in self.canvases:
            logger.warning("Ignoring unknown page id %s", page_id)
            return
        self.active_page_id = page_id

    def canvas(self, page_id: str) -> Optional[AnnotationCanvas]:
        return self.canvases.get(page_id)

    # ------------------------------------------------------------------
    # History capture
    # ------------------------------------------------------------------

    @contextmanager
    def suppress_capture(self, page_id: str):
        """Pause history capture for a page while it is rebuilt or bulk-edited."""
        self._suppressed[page_id] = self._suppressed.get(page_id, 0) + 1
        try:
            yield
        finally:
            remaining = self._suppressed.get(page_id, 1) - 1
            if remaining > 0:
                self._suppressed[page_id] = remaining
            else:
                self._suppressed.pop(page_id, None)

    def is_capture_suppressed(self, page_id: str) -> bool:
        return self._suppressed.get(page_id, 0) > 0

    @contextmanager
    def _batch(self, page_id: str):
        """Group several mutations of one page into a single history entry."""
        with self.suppress_capture(page_id):
            yield
        self._capture(page_id, only_if_changed=True)

    def _on_canvas_changed(self, page_id: str, _obj=None) -> None:
        if self.is_capture_suppressed(page_id):
            return
        self._capture(page_id)

    def _capture(self, page_id: str, only_if_changed: bool = False) -> None:
        canvas = self.canvases.get(page_id)
        history = self.histories.get(page_id)
        if canvas is None or history is None:
            return
        snapshot = PageSnapshot.capture(
            obj for obj in canvas.objects() if not self._is_provisional(obj))
        if only_if_changed and snapshot == history.current:
            return
        history.push_state(snapshot)
        self.history_changed.emit(page_id)

    def _replay(self, page_id: str, snapshot: PageSnapshot) -> None:
        canvas = self.canvases[page_id]
        with self.suppress_capture(page_id):
            canvas.load(snapshot.restore())
            for obj in canvas.objects():
                self._apply_interactivity(obj)

    def undo(self) -> bool:
        """Undo the last change on the active page."""
        page_id = self.active_page_id
        history = self.histories.get(page_id)
        if history is None or not history.can_undo():
            return False
        self._cancel_drag()
        self._replay(page_id, history.undo())
        self.history_changed.emit(page_id)
        return True

    def redo(self) -> bool:
        """Redo the last undone change on the active page."""
        page_id = self.active_page_id
        history = self.histories.get(page_id)
        if history is None or not history.can_redo():
            return False
        self._cancel_drag()
        self._replay(page_id, history.redo())
        self.history_changed.emit(page_id)
        return True

    def can_undo(self, page_id: Optional[str] = None) -> bool:
        history = self.histories.get(page_id or self.active_page_id)
        return history is not None and history.can_undo()

    def can_redo(self, page_id: Optional[str] = None) -> bool:
        history = self.histories.get(page_id or self.active_page_id)
        return history is not None and history.can_redo()

    # ------------------------------------------------------------------
    # Tools, settings and interactivity
    # ------------------------------------------------------------------

    def set_tool(self, tool) -> None:
        """Activate a tool; accepts a Tool or its string name."""
        tool = Tool(tool)
        self._cancel_drag()
        self.active_tool = tool
        for canvas in self.canvases.values():
            if tool != Tool.SELECT:
                canvas.discard_active()
            for obj in canvas.objects():
                self._apply_interactivity(obj)
        self.tool_changed.emit(tool)

    def update_settings(self, **changes) -> None:
        """
        Change tool settings; text settings also restyle a selected text object.

        Raises:
            TypeError: for an unknown setting name
        """
        self.settings = dataclasses.replace(self.settings, **changes)

        for page_id, canvas in self.canvases.items():
            obj = canvas.active_object()
            if obj is None or obj.kind != AnnotationKind.TEXT:
                continue
            attrs = {attr: getattr(self.settings, key)
                     for key, attr in _TEXT_SETTING_ATTRS.items() if key in changes}
            if 'font_size' in changes:
                attrs['font_size'] = self.settings.font_size * self.current_scale / obj.scale_y
            if attrs:
                self.modify(page_id, obj, **attrs)

    def _apply_interactivity(self, obj: Annotation) -> None:
        flags = interactivity_for(obj.kind, obj.locked, self.mode, self.active_tool)
        obj.selectable, obj.movable, obj.resizable = flags

    def _on_mode_changed(self, _mode) -> None:
        self._cancel_drag()
        for canvas in self.canvases.values():
            canvas.discard_active()
            for obj in canvas.objects():
                self._apply_interactivity(obj)

    # ------------------------------------------------------------------
    # Object mutations
    # ------------------------------------------------------------------

    def add_object(self, page_id: str, obj: Annotation, index: Optional[int] = None) -> None:
        """Add an object to a page; one history entry."""
        canvas = self.canvases[page_id]
        self._apply_interactivity(obj)
        canvas.add(obj, index)

    def modify(self, page_id: str, obj: Annotation, **attrs) -> bool:
        """
        Update persisted attributes of an object as one history entry.

        Raises:
            DuplicateFieldNameError: if ``field_name`` collides with another field
        """
        canvas = self.canvases.get(page_id)
        if canvas is None or obj not in canvas:
            return False
        if 'field_name' in attrs:
            attrs['field_name'] = (attrs['field_name'] or '').strip()
            self._check_field_name(obj, attrs['field_name'])

        with self._batch(page_id):
            changed = canvas.modify(obj, **attrs)
            if changed and obj.kind == AnnotationKind.TEXT and {'text', 'font_size'} & attrs.keys():
                fit_text_box(obj)
            if changed and 'locked' in attrs:
                self._apply_interactivity(obj)
        return changed

    def move_object(self, page_id: str, obj: Annotation, dx: float, dy: float) -> bool:
        """Move an object; refused for locked or immovable objects."""
        canvas = self.canvases.get(page_id)
        if canvas is None or obj not in canvas or obj.locked or not obj.movable:
            return False
        canvas.move_by(obj, dx, dy)
        return True

    def resize_object(self, page_id: str, obj: Annotation,
                      scale_x: float, scale_y: float) -> bool:
        """Set a box object's scale factors; refused for locked or fixed-size objects."""
        if obj.locked or not obj.resizable:
            return False
        return self.modify(page_id, obj, scale_x=scale_x, scale_y=scale_y)

    def set_field_name(self, page_id: str, obj: Annotation, name: str) -> bool:
        """
        Assign a field name, enforcing uniqueness across all pages.

        Radios may share a name with other radios, which makes them one group.

        Raises:
            InvalidFieldValueError: if the object is not a form field
            DuplicateFieldNameError: if another field already uses the name
        """
        if not obj.is_field:
            raise InvalidFieldValueError(f"{obj.kind.value} objects have no field name")
        return self.modify(page_id, obj, field_name=name)

    def _check_field_name(self, obj: Annotation, name: str) -> None:
        if not name:
            return
        for other in self._iter_all_objects():
            if other is obj or not other.is_field or other.field_name != name:
                continue
            if obj.kind == AnnotationKind.RADIO and other.kind == AnnotationKind.RADIO:
                continue
            raise DuplicateFieldNameError(name)

    def set_options(self, page_id: str, obj: Annotation, options: Iterable[str]) -> bool:
        """Replace a dropdown's options; a selection no longer offered is cleared."""
        if obj.kind != AnnotationKind.DROPDOWN:
            raise InvalidFieldValueError(f"{obj.kind.value} objects have no options")
        cleaned = [str(o).strip() for o in options if str(o).strip()]
        attrs = {'options': cleaned}
        if obj.selected_option and obj.selected_option not in cleaned:
            attrs['selected_option'] = ''
        return self.modify(page_id, obj, **attrs)

    def bring_to_front(self, page_id: str, obj: Annotation) -> None:
        canvas = self.canvases.get(page_id)
        if canvas is not None:
            canvas.bring_to_front(obj)

    def send_to_back(self, page_id: str, obj: Annotation) -> None:
        canvas = self.canvases.get(page_id)
        if canvas is not None:
            canvas.send_to_back(obj)

    def delete_selected(self) -> int:
        """
        Delete the selected objects on every page, skipping locked ones.

        Returns:
            Number of objects removed
        """
        removed = 0
        for page_id, canvas in list(self.canvases.items()):
            targets = [obj for obj in canvas.active_objects() if not obj.locked]
            if not targets:
                continue
            with self._batch(page_id):
                for obj in targets:
                    canvas.remove(obj)
                canvas.discard_active()
            removed += len(targets)
        return removed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _iter_all_objects(self):
        for canvas in self.canvases.values():
            yield from canvas.objects()

    def _is_provisional(self, obj: Annotation) -> bool:
        return self._drag is not None and self._drag.obj is obj

    def get_all_annotations(self) -> Dict[str, List[Annotation]]:
        """
        Copies of every page's objects, bottom to top.

        Returns:
            Mapping of view page id to annotation copies
        """
        return {
            page_id: [obj.copy() for obj in canvas.objects() if not self._is_provisional(obj)]
            for page_id, canvas in self.canvases.items()
        }

    def all_field_names(self) -> List[str]:
        names = {obj.field_name for obj in self._iter_all_objects()
                 if obj.is_field and obj.field_name}
        return sorted(names)

    def find_page_of(self, obj: Annotation) -> Optional[str]:
        for page_id, canvas in self.canvases.items():
            if obj in canvas:
                return page_id
        return None

    # ------------------------------------------------------------------
    # Scale
    # ------------------------------------------------------------------

    def rescale(self, new_scale: float) -> None:
        """
        Rescale every stored geometry to a new display scale.

        Canvases, objects and history states are all converted so that undo
        after a zoom change restores objects at the live scale.
        """
        if new_scale <= 0:
            raise ValueError(f"Scale must be positive, got {new_scale}")
        factor = new_scale / self.current_scale
        self.current_scale = new_scale
        if factor == 1:
            return

        self._cancel_drag()
        for page_id, canvas in self.canvases.items():
            with self.suppress_capture(page_id):
                canvas.set_size(canvas.width * factor, canvas.height * factor)
                for obj in canvas.objects():
                    obj.scale_geometry(factor)
            self.histories[page_id].transform(lambda snap: snap.scaled(factor))

    # ------------------------------------------------------------------
    # Bulk fill and import
    # ------------------------------------------------------------------

    def populate_fields(self, values: Dict[str, object]) -> int:
        """
        Fill fields by name on every page.

        Each touched page gets exactly one history entry.

        Args:
            values: Field name to value; checkbox values are read as booleans,
                radios are checked when the value equals their radio value

        Returns:
            Number of objects whose value changed
        """
        updated = 0
        for page_id, canvas in self.canvases.items():
            with self._batch(page_id):
                for obj in canvas.objects():
                    if not obj.is_field or obj.field_name not in values:
                        continue
                    attrs = self._fill_attrs(obj, values[obj.field_name])
                    if attrs and canvas.modify(obj, **attrs):
                        updated += 1
        return updated

    def _fill_attrs(self, obj: Annotation, value) -> Optional[dict]:
        text = '' if value is None else str(value).strip()
        if obj.kind in (AnnotationKind.TEXTFIELD, AnnotationKind.DATE):
            return {'field_value': text}
        if obj.kind == AnnotationKind.CHECKBOX:
            checked = value if isinstance(value, bool) else text.lower() in _TRUTHY
            return {'checked': checked}
        if obj.kind == AnnotationKind.RADIO:
            return {'checked': text == obj.radio_value}
        if obj.kind == AnnotationKind.DROPDOWN:
            if text and text not in obj.options:
                logger.warning("Skipping %r for dropdown %s: not one of its options",
                               text, obj.field_name)
                return None
            return {'selected_option': text}
        return None

    def import_form_fields(self, descriptors, page_ids: Sequence[str], scale: float) -> list:
        """
        Turn existing document form fields into editable objects.

        A field whose name is already used elsewhere in the session is kept
        under a suffixed name (``name_2``, ``name_3``...).

        Args:
            descriptors: FieldDescriptor items from ``load_form_fields``
            page_ids: View page ids in source page order
            scale: Display scale the canvases are rendered at

        Returns:
            The descriptors that became objects
        """
        imported = []
        touched: Dict[str, None] = {}
        for desc in descriptors:
            if not 0 <= desc.page_index < len(page_ids):
                continue
            page_id = page_ids[desc.page_index]
            if page_id not in self.canvases:
                continue
            obj = self._annotation_from_descriptor(desc, scale)
            obj.field_name = self._free_field_name(obj)
            if obj.field_name != desc.name:
                logger.warning("Imported field %s renamed to %s: name already in use",
                               desc.name, obj.field_name)
            # Later descriptors must see this one when checking names
            with self.suppress_capture(page_id):
                self.add_object(page_id, obj)
            touched[page_id] = None
            imported.append(desc)

        for page_id in touched:
            self._capture(page_id, only_if_changed=True)
        return imported

    def _free_field_name(self, obj: Annotation) -> str:
        base = obj.field_name
        candidate, n = base, 1
        while True:
            try:
                self._check_field_name(obj, candidate)
                return candidate
            except DuplicateFieldNameError:
                n += 1
                candidate = f"{base}_{n}"

    @staticmethod
    def _annotation_from_descriptor(desc, scale: float) -> Annotation:
        x0, y0, x1, y1 = desc.rect
        obj = Annotation(
            kind=desc.kind,
            left=x0 * scale,
            top=y0 * scale,
            width=(x1 - x0) * scale,
            height=(y1 - y0) * scale,
            field_name=desc.name,
        )
        if desc.kind in (AnnotationKind.TEXTFIELD, AnnotationKind.DATE, AnnotationKind.DROPDOWN):
            obj.font_size = FIELD_FONT_SIZE * scale
        if desc.kind in (AnnotationKind.TEXTFIELD, AnnotationKind.DATE):
            obj.field_value = desc.value
        elif desc.kind == AnnotationKind.CHECKBOX:
            obj.checked = desc.checked
        elif desc.kind == AnnotationKind.RADIO:
            obj.checked = desc.checked
            obj.radio_value = desc.value or new_radio_value()
        elif desc.kind == AnnotationKind.DROPDOWN:
            obj.options = list(desc.options)
            obj.selected_option = desc.value if desc.value in desc.options else ''
        elif desc.kind == AnnotationKind.SIGNATURE_FIELD:
            obj.signature_label = desc.label or DEFAULT_SIGNATURE_LABEL
        return obj

    # ------------------------------------------------------------------
    # Pending images and signatures
    # ------------------------------------------------------------------

    def set_pending_image(self, data: Optional[bytes]) -> None:
        """
        Set the image the image tool will place next.

        Raises:
            UnsupportedImageError: if the bytes are neither PNG nor JPEG
        """
        if data:
            sniff_image_format(data)
        self._pending_image = data or None

    def set_signature(self, image_data: Optional[bytes],
                      meta: Optional[SignatureMeta] = None) -> None:
        """Set the signature image and audit metadata for the signature tools."""
        if image_data:
            sniff_image_format(image_data)
        self._signature_image = image_data or None
        self._signature_meta = meta if image_data else None

    @property
    def has_signature(self) -> bool:
        return self._signature_image is not None

    def _stamped_meta(self, meta: Optional[SignatureMeta]) -> Optional[SignatureMeta]:
        if meta is None:
            return None
        now = datetime.now(timezone.utc).isoformat(timespec='milliseconds')
        return dataclasses.replace(meta, timestamp=now.replace('+00:00', 'Z'))

    # ------------------------------------------------------------------
    # Pointer dispatch
    # ------------------------------------------------------------------

    def pointer_down(self, page_id: str, x: float, y: float) -> Optional[Annotation]:
        """
        Handle a press on a page canvas.

        Returns:
            The object created, selected or acted upon, if any
        """
        canvas = self.canvases.get(page_id)
        if canvas is None:
            return None
        self.active_page_id = page_id
        self._cancel_drag()

        if self.mode == InteractionMode.FILL:
            return self._fill_click(page_id, x, y)

        tool = self.active_tool
        if tool == Tool.SELECT:
            hit = canvas.object_at(x, y)
            if hit is None:
                canvas.discard_active()
            else:
                canvas.set_active(hit)
            return hit
        if tool == Tool.ERASER:
            return self._erase_at(page_id, x, y)
        if tool in PLACEMENT_TOOLS:
            return self._place(page_id, tool, x, y)
        if tool in DRAG_TOOLS:
            obj = start_drag(tool, x, y, self.settings, self.current_scale)
            self._drag = _DragState(page_id, obj, x, y)
            with self.suppress_capture(page_id):
                canvas.add(obj)
            return obj
        return None

    def pointer_move(self, page_id: str, x: float, y: float) -> None:
        drag = self._drag
        if drag is None or drag.page_id != page_id:
            return
        canvas = self.canvases[page_id]
        with self.suppress_capture(page_id):
            update_drag(drag.obj, drag.start_x, drag.start_y, x, y)
            canvas.object_modified.emit(drag.obj)

    def pointer_up(self, page_id: str, x: float, y: float) -> Optional[Annotation]:
        """
        Finish a drag gesture.

        Returns:
            The finalized object, or None if nothing was kept
        """
        drag = self._drag
        if drag is None or drag.page_id != page_id:
            return None
        self._drag = None
        canvas = self.canvases[page_id]
        obj = drag.obj

        if drag_too_small(obj, self.config.min_drag_size):
            with self.suppress_capture(page_id):
                canvas.remove(obj)
            return None

        with self.suppress_capture(page_id):
            self._apply_interactivity(obj)
            if obj.kind == AnnotationKind.HIGHLIGHT:
                canvas.send_to_back(obj)
        self._capture(page_id)
        return obj

    def _cancel_drag(self) -> None:
        drag = self._drag
        if drag is None:
            return
        self._drag = None
        canvas = self.canvases.get(drag.page_id)
        if canvas is not None:
            with self.suppress_capture(drag.page_id):
                canvas.remove(drag.obj)

    def _place(self, page_id: str, tool: Tool, x: float, y: float) -> Optional[Annotation]:
        extra = {}
        if tool == Tool.IMAGE:
            extra['image_data'] = self._pending_image
        elif tool == Tool.SIGNATURE:
            extra['image_data'] = self._signature_image
            extra['signature_meta'] = self._stamped_meta(self._signature_meta)

        obj = build_placement(tool, x, y, self.settings, self.current_scale, **extra)
        if obj is None:
            logger.debug("Nothing to place for %s", tool.value)
            return None

        self.add_object(page_id, obj)
        if tool not in STICKY_TOOLS:
            self.set_tool(Tool.SELECT)
        self.canvases[page_id].set_active(obj)
        return obj

    def _erase_at(self, page_id: str, x: float, y: float) -> Optional[Annotation]:
        canvas = self.canvases[page_id]
        for obj in reversed(canvas.objects()):
            if not obj.locked and obj.bounds().contains_point(x, y):
                canvas.remove(obj)
                return obj
        return None

    # ------------------------------------------------------------------
    # Fill mode
    # ------------------------------------------------------------------

    def _fill_click(self, page_id: str, x: float, y: float) -> Optional[Annotation]:
        canvas = self.canvases[page_id]
        obj = canvas.object_at(x, y)
        if obj is None:
            canvas.discard_active()
            return None
        if obj.locked:
            return None
        canvas.set_active(obj)

        if obj.kind in (AnnotationKind.TEXTFIELD, AnnotationKind.DATE):
            self.value_editor_requested.emit(page_id, obj, obj.bounds())
        elif obj.kind == AnnotationKind.DROPDOWN:
            self.option_selector_requested.emit(page_id, obj, obj.bounds())
        elif obj.kind == AnnotationKind.CHECKBOX:
            self.modify(page_id, obj, checked=not obj.checked)
        elif obj.kind == AnnotationKind.RADIO:
            self.check_radio(page_id, obj)
        elif obj.kind == AnnotationKind.SIGNATURE_FIELD:
            self.signature_requested.emit(page_id, obj)
        return obj

    def check_radio(self, page_id: str, obj: Annotation) -> None:
        """Check a radio and uncheck every other radio of its group on every page."""
        if not obj.field_name:
            self.modify(page_id, obj, checked=not obj.checked)
            return
        for other_page_id, canvas in self.canvases.items():
            with self._batch(other_page_id):
                for other in canvas.objects():
                    if (other is not obj and other.kind == AnnotationKind.RADIO
                            and other.field_name == obj.field_name and other.checked):
                        canvas.modify(other, checked=False)
                if other_page_id == page_id:
                    canvas.modify(obj, checked=True)

    def _lock_attrs(self, value) -> dict:
        return {'locked': True} if self.config.lock_filled_fields and value else {}

    def commit_field_value(self, page_id: str, obj: Annotation, value: str) -> bool:
        """
        Store the value typed into a text or date field.

        Raises:
            InvalidFieldValueError: if the object is not a text or date field
        """
        if obj.kind not in (AnnotationKind.TEXTFIELD, AnnotationKind.DATE):
            raise InvalidFieldValueError(f"{obj.kind.value} objects do not take a text value")
        value = value or ''
        return self.modify(page_id, obj, field_value=value, **self._lock_attrs(value))

    def select_option(self, page_id: str, obj: Annotation, option: str) -> bool:
        """
        Select one of a dropdown's options; an empty string clears it.

        Raises:
            InvalidFieldValueError: if the option is not offered
        """
        if obj.kind != AnnotationKind.DROPDOWN:
            raise InvalidFieldValueError(f"{obj.kind.value} objects have no options")
        option = option or ''
        if option and option not in obj.options:
            raise InvalidFieldValueError(f"{option!r} is not an option of {obj.field_name or 'dropdown'}")
        return self.modify(page_id, obj, selected_option=option, **self._lock_attrs(option))

    def apply_signature_to_field(self, page_id: str, field_obj: Annotation,
                                 image_data: Optional[bytes] = None,
                                 meta: Optional[SignatureMeta] = None) -> Optional[Annotation]:
        """
        Replace a signature field by a locked signature image.

        The image is fitted inside the field's box and takes its place in the
        z-order. Falls back to the signature set with :meth:`set_signature`.

        Returns:
            The signature object, or None if there is nothing to apply
        """
        canvas = self.canvases.get(page_id)
        if (canvas is None or field_obj not in canvas or field_obj.locked
                or field_obj.kind != AnnotationKind.SIGNATURE_FIELD):
            return None
        if image_data is None:
            image_data, meta = self._signature_image, meta or self._signature_meta
        if not image_data:
            return None
        sniff_image_format(image_data)

        px_width, px_height = image_size(image_data)
        box = field_obj.bounds()
        factor = min(box.width / px_width, box.height / px_height)
        signature = Annotation(
            kind=AnnotationKind.SIGNATURE,
            left=box.left + (box.width - px_width * factor) / 2,
            top=box.top + (box.height - px_height * factor) / 2,
            width=px_width,
            height=px_height,
            scale_x=factor,
            scale_y=factor,
            image_data=image_data,
            signature_meta=self._stamped_meta(meta),
            locked=True,
        )

        with self._batch(page_id):
            index = canvas.index_of(field_obj)
            canvas.remove(field_obj)
            self.add_object(page_id, signature, index)
        canvas.set_active(signature)
        return signature
