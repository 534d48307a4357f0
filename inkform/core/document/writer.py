"""
Thin PyMuPDF wrapper used by the exporter to build the output document.

All drawing methods take coordinates in the page's visible space (origin
top-left, page rotation already applied, points as units) and convert them
to the unrotated space PyMuPDF expects.
"""
import logging
import re
from dataclasses import dataclass
from typing import Collection, Dict, Iterable, List, Optional, Sequence, Set, Tuple

import fitz  # PyMuPDF

from inkform.core.errors import DocumentLoadError, FieldCreationError

from .registry import Document

logger = logging.getLogger(__name__)

RGB = Tuple[float, float, float]
Rect = Tuple[float, float, float, float]
Point = Tuple[float, float]

FIELD_BORDER = (0.15, 0.39, 0.92)
FIELD_BACKGROUND = (1.0, 1.0, 1.0)

# Field flags of a radio group: Radio | NoToggleToOff
RADIO_GROUP_FLAGS = 49152

METADATA_KEYS = frozenset({
    'title', 'author', 'subject', 'keywords', 'creator', 'producer',
    'creationDate', 'modDate', 'trapped',
})

_REFERENCE = re.compile(r"(\d+)\s+0\s+R")
_APPEARANCE_STATE = re.compile(r"/([^\s/<>\[\]()]+)\s*(\d+\s+0\s+R)")
_NOT_NAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


@dataclass
class _RadioButton:
    xref: int
    on_state: str
    checked: bool


class DocumentWriter:
    """Builds a new PDF from copied source pages and drawing commands."""

    def __init__(self):
        self.doc = fitz.open()
        self._sources: Dict[str, fitz.Document] = {}
        self._field_names: Set[str] = set()
        self._radio_groups: Dict[str, List[_RadioButton]] = {}

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self) -> None:
        for src in self._sources.values():
            src.close()
        self._sources.clear()
        self.doc.close()

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    def open_source(self, document: Document) -> fitz.Document:
        """
        Open a source document once per export.

        Raises:
            DocumentLoadError: if the bytes cannot be opened
        """
        src = self._sources.get(document.document_id)
        if src is None:
            try:
                src = document.open()
            except (RuntimeError, ValueError) as e:
                raise DocumentLoadError(f"Cannot open {document.document_id}: {e}") from e
            self._sources[document.document_id] = src
        return src

    def copy_page(self, document: Document, page_number: int,
                  strip_widgets: Collection[str] = ()) -> fitz.Page:
        """
        Append a 1-based source page and return the new page.

        Copied widgets named in ``strip_widgets`` are removed: they were
        imported as editable objects and are re-created from those. Names of
        the widgets that stay are reserved for the rest of the export.
        """
        src = self.open_source(document)
        self.doc.insert_pdf(src, from_page=page_number - 1, to_page=page_number - 1)
        page = self.doc[self.doc.page_count - 1]
        stripped = set(strip_widgets)
        for widget in list(page.widgets()):
            if widget.field_name in stripped:
                page.delete_widget(widget)
            elif widget.field_name:
                self._field_names.add(widget.field_name)
        return page

    def source_metadata(self, document_id: str) -> dict:
        src = self._sources.get(document_id)
        return dict(src.metadata or {}) if src is not None else {}

    @staticmethod
    def page_size(page: fitz.Page) -> Tuple[float, float]:
        """Visible page size in points."""
        return page.rect.width, page.rect.height

    @staticmethod
    def set_rotation(page: fitz.Page, rotation: int) -> None:
        page.set_rotation(rotation % 360)

    @staticmethod
    def _rect(page: fitz.Page, rect: Rect) -> fitz.Rect:
        return (fitz.Rect(rect) * page.derotation_matrix).normalize()

    @staticmethod
    def _point(page: fitz.Page, point: Point) -> fitz.Point:
        return fitz.Point(point) * page.derotation_matrix

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def draw_rect(self, page: fitz.Page, rect: Rect, *, fill: Optional[RGB] = None,
                  color: Optional[RGB] = None, width: float = 0, opacity: float = 1.0) -> None:
        shape = page.new_shape()
        shape.draw_rect(self._rect(page, rect))
        shape.finish(color=color if width > 0 else None, fill=fill, width=width,
                     fill_opacity=opacity, stroke_opacity=opacity)
        shape.commit()

    def draw_oval(self, page: fitz.Page, rect: Rect, *, fill: Optional[RGB] = None,
                  color: Optional[RGB] = None, width: float = 0, opacity: float = 1.0) -> None:
        shape = page.new_shape()
        shape.draw_oval(self._rect(page, rect))
        shape.finish(color=color if width > 0 else None, fill=fill, width=width,
                     fill_opacity=opacity, stroke_opacity=opacity)
        shape.commit()

    def draw_line(self, page: fitz.Page, start: Point, end: Point, *,
                  color: RGB, width: float, opacity: float = 1.0) -> None:
        shape = page.new_shape()
        shape.draw_line(self._point(page, start), self._point(page, end))
        shape.finish(color=color, width=width, stroke_opacity=opacity, lineCap=1)
        shape.commit()

    def draw_polygon(self, page: fitz.Page, points: Sequence[Point], *,
                     fill: RGB, opacity: float = 1.0) -> None:
        shape = page.new_shape()
        shape.draw_polyline([self._point(page, p) for p in points])
        shape.finish(color=None, fill=fill, closePath=True, fill_opacity=opacity)
        shape.commit()

    def draw_text(self, page: fitz.Page, origin: Point, text: str, *, fontname: str,
                  fontsize: float, color: RGB, opacity: float = 1.0) -> None:
        """Write one line of text with its baseline starting at ``origin``."""
        page.insert_text(
            self._point(page, origin), text,
            fontname=fontname, fontsize=fontsize, color=color,
            rotate=page.rotation, fill_opacity=opacity,
        )

    def draw_textbox(self, page: fitz.Page, rect: Rect, text: str, *, fontname: str,
                     fontsize: float, color: RGB, align: int = fitz.TEXT_ALIGN_LEFT,
                     opacity: float = 1.0) -> None:
        """Write wrapped text inside a box; text that does not fit is dropped."""
        page.insert_textbox(
            self._rect(page, rect), text,
            fontname=fontname, fontsize=fontsize, color=color, align=align,
            rotate=page.rotation, fill_opacity=opacity,
        )

    def insert_image(self, page: fitz.Page, rect: Rect, data: bytes) -> None:
        page.insert_image(self._rect(page, rect), stream=data,
                          keep_proportion=False, rotate=page.rotation)

    @staticmethod
    def render_polyline_png(points: Sequence[Point], size: Tuple[float, float], *,
                            color: RGB, width: float, opacity: float = 1.0,
                            zoom: float = 2.0) -> bytes:
        """
        Rasterize a polyline on a transparent background.

        Args:
            points: Points relative to the top-left corner of the image
            size: Image size in points
            color: Stroke colour
            width: Stroke width in points
            opacity: Stroke opacity
            zoom: Pixels per point

        Returns:
            PNG bytes
        """
        with fitz.open() as scratch:
            page = scratch.new_page(width=max(size[0], 1), height=max(size[1], 1))
            shape = page.new_shape()
            shape.draw_polyline([fitz.Point(p) for p in points])
            shape.finish(color=color, width=width, stroke_opacity=opacity,
                         lineCap=1, lineJoin=1, closePath=False)
            shape.commit()
            pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=True)
            return pix.tobytes("png")

    # ------------------------------------------------------------------
    # Form fields
    # ------------------------------------------------------------------

    def _check_name(self, name: str, radio: bool = False) -> None:
        taken = name in self._field_names or (not radio and name in self._radio_groups)
        if taken:
            raise FieldCreationError(f"Field name already used: {name!r}")

    def _add_widget(self, page: fitz.Page, widget: fitz.Widget, radio: bool = False) -> int:
        """
        Add a widget to a page and return its xref.

        A widget that fails half way is removed again, so the caller can draw
        a placeholder in its place.
        """
        self._check_name(widget.field_name, radio)
        widget.border_color = FIELD_BORDER
        widget.fill_color = FIELD_BACKGROUND
        widget.border_width = 1
        before = {w.xref for w in page.widgets()}
        try:
            annot = page.add_widget(widget)
        except (RuntimeError, ValueError) as e:
            self._discard_new_widgets(page, before)
            raise FieldCreationError(f"Cannot create field {widget.field_name!r}: {e}") from e
        if not radio:
            self._field_names.add(widget.field_name)
        return annot.xref

    @staticmethod
    def _discard_new_widgets(page: fitz.Page, before: Set[int]) -> None:
        for widget in list(page.widgets()):
            if widget.xref not in before:
                page.delete_widget(widget)

    def add_text_field(self, page: fitz.Page, rect: Rect, name: str, value: str = "",
                       font_size: float = 12) -> None:
        widget = fitz.Widget()
        widget.field_type = fitz.PDF_WIDGET_TYPE_TEXT
        widget.field_name = name
        widget.rect = self._rect(page, rect)
        widget.field_value = value or ""
        widget.text_fontsize = font_size
        self._add_widget(page, widget)

    def add_checkbox(self, page: fitz.Page, rect: Rect, name: str, checked: bool = False) -> None:
        widget = fitz.Widget()
        widget.field_type = fitz.PDF_WIDGET_TYPE_CHECKBOX
        widget.field_name = name
        widget.rect = self._rect(page, rect)
        widget.field_value = bool(checked)
        self._add_widget(page, widget)

    def add_radio(self, page: fitz.Page, rect: Rect, name: str, checked: bool = False,
                  on_state: str = "") -> None:
        """
        Add one button of a radio group.

        Buttons sharing ``name`` become kids of a single parent field when the
        document is saved; ``on_state`` is the value the group takes when this
        button is on. At most one button per group ends up checked.
        """
        widget = fitz.Widget()
        widget.field_type = fitz.PDF_WIDGET_TYPE_RADIOBUTTON
        widget.field_name = name
        widget.rect = self._rect(page, rect)
        # Added unchecked; the state is written when the group is assembled
        widget.field_value = False
        xref = self._add_widget(page, widget, radio=True)

        buttons = self._radio_groups.setdefault(name, [])
        state = _NOT_NAME_CHARS.sub('_', on_state or '') or f"option_{len(buttons) + 1}"
        if state == 'Off' or state in {b.on_state for b in buttons}:
            state = f"{state}_{len(buttons) + 1}"
        self._rename_on_state(xref, state)
        buttons.append(_RadioButton(xref, state, bool(checked)))

    def _rename_on_state(self, xref: int, state: str) -> None:
        """Give a button's 'on' appearance the name of its own value."""
        for stream in ('N', 'D'):
            kind, value = self.doc.xref_get_key(xref, f"AP/{stream}")
            if kind != 'dict':
                continue
            for key, ref in _APPEARANCE_STATE.findall(value):
                if key in ('Off', state):
                    continue
                self.doc.xref_set_key(xref, f"AP/{stream}/{state}", ref)
                self.doc.xref_set_key(xref, f"AP/{stream}/{key}", "null")

    def _assemble_radio_groups(self) -> None:
        """Gather same-named radio buttons under one parent field per group."""
        if not self._radio_groups:
            return
        catalog = self.doc.pdf_catalog()
        kind, value = self.doc.xref_get_key(catalog, "AcroForm/Fields")
        fields = [int(x) for x in _REFERENCE.findall(value)] if kind == 'array' else []

        for name, buttons in self._radio_groups.items():
            chosen = next((b for b in buttons if b.checked), None)
            group_value = chosen.on_state if chosen else 'Off'
            kids = " ".join(f"{b.xref} 0 R" for b in buttons)
            parent = self.doc.get_new_xref()
            self.doc.update_object(
                parent,
                f"<</FT/Btn/Ff {RADIO_GROUP_FLAGS}/T{fitz.get_pdf_str(name)}"
                f"/V/{group_value}/Kids[{kids}]>>",
            )
            for button in buttons:
                for key in ('T', 'FT', 'Ff', 'V'):
                    self.doc.xref_set_key(button.xref, key, "null")
                self.doc.xref_set_key(button.xref, "Parent", f"{parent} 0 R")
                state = button.on_state if button is chosen else 'Off'
                self.doc.xref_set_key(button.xref, "AS", f"/{state}")

            kid_xrefs = {b.xref for b in buttons}
            fields = [x for x in fields if x not in kid_xrefs] + [parent]

        self.doc.xref_set_key(catalog, "AcroForm/Fields",
                              "[" + " ".join(f"{x} 0 R" for x in fields) + "]")
        self._radio_groups.clear()

    def add_combobox(self, page: fitz.Page, rect: Rect, name: str, options: Iterable[str],
                     value: str = "", font_size: float = 12) -> None:
        options = list(options)
        widget = fitz.Widget()
        widget.field_type = fitz.PDF_WIDGET_TYPE_COMBOBOX
        widget.field_name = name
        widget.rect = self._rect(page, rect)
        widget.choice_values = options
        widget.field_value = value if value in options else ""
        widget.text_fontsize = font_size
        self._add_widget(page, widget)

    # ------------------------------------------------------------------
    # Document level
    # ------------------------------------------------------------------

    def attach(self, name: str, data: bytes, description: str = "") -> None:
        self.doc.embfile_add(name, data, filename=name, ufilename=name, desc=description)

    def set_metadata(self, **values: str) -> None:
        """Merge values into the document information dictionary."""
        metadata = {k: v for k, v in (self.doc.metadata or {}).items()
                    if k in METADATA_KEYS and v}
        metadata.update({k: v for k, v in values.items() if v is not None})
        self.doc.set_metadata(metadata)

    def save(self) -> bytes:
        self._assemble_radio_groups()
        return self.doc.tobytes(garbage=4, deflate=True)
