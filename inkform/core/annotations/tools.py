"""
Tool names and the builders that turn pointer gestures into annotations.

Default sizes are expressed in document points and converted to canvas
pixels at the current display scale, so a placed object has the same
size in the exported document whatever the zoom level was.
"""
import uuid
from enum import Enum
from typing import Callable, Dict, Optional

from inkform.config import ToolSettings
from inkform.helpers.images import image_size

from .models import LINE_KINDS, Annotation, AnnotationKind


class Tool(Enum):
    SELECT = "select"
    TEXT = "text"
    WHITEOUT = "whiteout"
    HIGHLIGHT = "highlight"
    UNDERLINE = "underline"
    STRIKE = "strike"
    RECT = "rect"
    ELLIPSE = "ellipse"
    ARROW = "arrow"
    DRAW = "draw"
    NOTE = "note"
    STAMP = "stamp"
    IMAGE = "image"
    ERASER = "eraser"
    TEXTFIELD = "textfield"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DROPDOWN = "dropdown"
    DATE = "date"
    SIGNATURE = "signature"
    SIGNATURE_FIELD = "signature-field"


PLACEMENT_TOOLS = frozenset({
    Tool.TEXT, Tool.NOTE, Tool.STAMP, Tool.IMAGE,
    Tool.TEXTFIELD, Tool.CHECKBOX, Tool.RADIO, Tool.DROPDOWN, Tool.DATE,
    Tool.SIGNATURE, Tool.SIGNATURE_FIELD,
})

DRAG_TOOLS = frozenset({
    Tool.WHITEOUT, Tool.HIGHLIGHT, Tool.RECT, Tool.ELLIPSE,
    Tool.UNDERLINE, Tool.STRIKE, Tool.ARROW, Tool.DRAW,
})

# Signature tools stay active so several copies can be placed in a row
STICKY_TOOLS = frozenset({Tool.SIGNATURE, Tool.SIGNATURE_FIELD})

TOOL_KINDS: Dict[Tool, AnnotationKind] = {
    Tool.TEXT: AnnotationKind.TEXT,
    Tool.WHITEOUT: AnnotationKind.WHITEOUT,
    Tool.HIGHLIGHT: AnnotationKind.HIGHLIGHT,
    Tool.UNDERLINE: AnnotationKind.UNDERLINE,
    Tool.STRIKE: AnnotationKind.STRIKE,
    Tool.RECT: AnnotationKind.RECT,
    Tool.ELLIPSE: AnnotationKind.ELLIPSE,
    Tool.ARROW: AnnotationKind.ARROW,
    Tool.DRAW: AnnotationKind.FREEHAND,
    Tool.NOTE: AnnotationKind.NOTE,
    Tool.STAMP: AnnotationKind.STAMP,
    Tool.IMAGE: AnnotationKind.IMAGE,
    Tool.TEXTFIELD: AnnotationKind.TEXTFIELD,
    Tool.CHECKBOX: AnnotationKind.CHECKBOX,
    Tool.RADIO: AnnotationKind.RADIO,
    Tool.DROPDOWN: AnnotationKind.DROPDOWN,
    Tool.DATE: AnnotationKind.DATE,
    Tool.SIGNATURE: AnnotationKind.SIGNATURE,
    Tool.SIGNATURE_FIELD: AnnotationKind.SIGNATURE_FIELD,
}

# Default sizes in document points
PLACEMENT_SIZES = {
    AnnotationKind.TEXTFIELD: (200.0, 30.0),
    AnnotationKind.CHECKBOX: (20.0, 20.0),
    AnnotationKind.RADIO: (20.0, 20.0),
    AnnotationKind.DROPDOWN: (220.0, 32.0),
    AnnotationKind.DATE: (200.0, 30.0),
    AnnotationKind.NOTE: (140.0, 70.0),
    AnnotationKind.STAMP: (170.0, 44.0),
    AnnotationKind.SIGNATURE_FIELD: (200.0, 50.0),
}
IMAGE_WIDTH = 240.0
SIGNATURE_WIDTH = 200.0

FIELD_FONT_SIZE = 12.0
NOTE_FONT_SIZE = 12.0
STAMP_FONT_SIZE = 20.0
STAMP_COLOR = "#dc2626"
DEFAULT_TEXT = "Click to edit"
DEFAULT_DROPDOWN_OPTIONS = ("Option 1", "Option 2")
DEFAULT_SIGNATURE_LABEL = "Signature"

# Rough glyph metrics used to size text boxes for hit testing
_CHAR_WIDTH = 0.6
LINE_HEIGHT = 1.2


def fit_text_box(obj: Annotation) -> None:
    """Size a text annotation's unscaled box to its content."""
    lines = obj.text.split('\n') or ['']
    longest = max(len(line) for line in lines)
    obj.width = max(longest, 1) * obj.font_size * _CHAR_WIDTH
    obj.height = len(lines) * obj.font_size * LINE_HEIGHT


def new_radio_value() -> str:
    return f"option_{uuid.uuid4().hex[:8]}"


# ----------------------------------------------------------------------
# One-shot placement
# ----------------------------------------------------------------------

def _sized(kind: AnnotationKind, x: float, y: float, scale: float, **attrs) -> Annotation:
    width, height = PLACEMENT_SIZES[kind]
    return Annotation(kind=kind, left=x, top=y, width=width * scale,
                      height=height * scale, **attrs)


def _place_text(x, y, settings, scale, **_):
    obj = Annotation(
        kind=AnnotationKind.TEXT, left=x, top=y,
        text=DEFAULT_TEXT,
        fill=settings.text_color,
        font_size=settings.font_size * scale,
        font_family=settings.font_family,
        font_weight=settings.font_weight,
        font_style=settings.font_style,
        text_align=settings.text_align,
    )
    fit_text_box(obj)
    return obj


def _place_note(x, y, settings, scale, note_text="", **_):
    return _sized(AnnotationKind.NOTE, x, y, scale,
                  note_text=note_text, font_size=NOTE_FONT_SIZE * scale)


def _place_stamp(x, y, settings, scale, **_):
    text = (settings.stamp_text or "APPROVED").upper()
    return _sized(AnnotationKind.STAMP, x, y, scale, stamp_text=text,
                  stroke=STAMP_COLOR, font_size=STAMP_FONT_SIZE * scale)


def _place_picture(kind: AnnotationKind, target_width: float, x, y, scale,
                   image_data: Optional[bytes], **attrs) -> Optional[Annotation]:
    if not image_data:
        return None
    px_width, px_height = image_size(image_data)
    factor = target_width * scale / px_width
    return Annotation(kind=kind, left=x, top=y, width=px_width, height=px_height,
                      scale_x=factor, scale_y=factor, image_data=image_data, **attrs)


def _place_image(x, y, settings, scale, image_data=None, **_):
    return _place_picture(AnnotationKind.IMAGE, IMAGE_WIDTH, x, y, scale, image_data)


def _place_signature(x, y, settings, scale, image_data=None, signature_meta=None, **_):
    return _place_picture(AnnotationKind.SIGNATURE, SIGNATURE_WIDTH, x, y, scale,
                          image_data, signature_meta=signature_meta)


def _place_textfield(x, y, settings, scale, **_):
    return _sized(AnnotationKind.TEXTFIELD, x, y, scale, font_size=FIELD_FONT_SIZE * scale)


def _place_date(x, y, settings, scale, **_):
    return _sized(AnnotationKind.DATE, x, y, scale, font_size=FIELD_FONT_SIZE * scale)


def _place_checkbox(x, y, settings, scale, **_):
    return _sized(AnnotationKind.CHECKBOX, x, y, scale)


def _place_radio(x, y, settings, scale, **_):
    return _sized(AnnotationKind.RADIO, x, y, scale, radio_value=new_radio_value())


def _place_dropdown(x, y, settings, scale, **_):
    return _sized(AnnotationKind.DROPDOWN, x, y, scale,
                  options=list(DEFAULT_DROPDOWN_OPTIONS), font_size=FIELD_FONT_SIZE * scale)


def _place_signature_field(x, y, settings, scale, **_):
    return _sized(AnnotationKind.SIGNATURE_FIELD, x, y, scale,
                  signature_label=DEFAULT_SIGNATURE_LABEL)


_PLACEMENT_BUILDERS: Dict[Tool, Callable[..., Optional[Annotation]]] = {
    Tool.TEXT: _place_text,
    Tool.NOTE: _place_note,
    Tool.STAMP: _place_stamp,
    Tool.IMAGE: _place_image,
    Tool.SIGNATURE: _place_signature,
    Tool.TEXTFIELD: _place_textfield,
    Tool.DATE: _place_date,
    Tool.CHECKBOX: _place_checkbox,
    Tool.RADIO: _place_radio,
    Tool.DROPDOWN: _place_dropdown,
    Tool.SIGNATURE_FIELD: _place_signature_field,
}

if set(_PLACEMENT_BUILDERS) != PLACEMENT_TOOLS:
    raise RuntimeError("Placement builder table does not cover every placement tool")


def build_placement(tool: Tool, x: float, y: float, settings: ToolSettings,
                    scale: float, **extra) -> Optional[Annotation]:
    """
    Create a complete object for a one-shot placement tool.

    Args:
        tool: One of PLACEMENT_TOOLS
        x: Pointer x in canvas pixels
        y: Pointer y in canvas pixels
        settings: Current tool settings
        scale: Current display scale
        **extra: image_data, signature_meta or note_text where relevant

    Returns:
        The new annotation, or None when a required input (image) is missing
    """
    return _PLACEMENT_BUILDERS[tool](x, y, settings, scale, **extra)


# ----------------------------------------------------------------------
# Drag-to-build
# ----------------------------------------------------------------------

def start_drag(tool: Tool, x: float, y: float, settings: ToolSettings,
               scale: float) -> Annotation:
    """Create the provisional object for a drag gesture starting at (x, y)."""
    kind = TOOL_KINDS[tool]
    stroke_width = settings.stroke_width * scale

    if kind == AnnotationKind.WHITEOUT:
        obj = Annotation(kind=kind, fill=settings.whiteout_color)
    elif kind == AnnotationKind.HIGHLIGHT:
        obj = Annotation(kind=kind, fill=settings.highlight_color,
                         opacity=settings.highlight_opacity)
    elif kind in (AnnotationKind.RECT, AnnotationKind.ELLIPSE):
        obj = Annotation(kind=kind, fill=settings.shape_fill, opacity=settings.shape_opacity,
                         stroke=settings.stroke_color, stroke_width=stroke_width)
    elif kind in LINE_KINDS:
        obj = Annotation(kind=kind, stroke=settings.stroke_color, stroke_width=stroke_width)
        obj.set_endpoints(x, y, x, y)
        return _provisional(obj)
    else:
        obj = Annotation(kind=kind, stroke=settings.stroke_color, stroke_width=stroke_width,
                         points=[(x, y)])
        obj.sync_path_bounds()
        return _provisional(obj)

    obj.left, obj.top = x, y
    return _provisional(obj)


def _provisional(obj: Annotation) -> Annotation:
    obj.selectable = obj.movable = obj.resizable = False
    return obj


def update_drag(obj: Annotation, start_x: float, start_y: float, x: float, y: float) -> None:
    """Follow the pointer while a drag gesture is in progress."""
    if obj.kind in (AnnotationKind.UNDERLINE, AnnotationKind.STRIKE):
        # Text markup stays horizontal
        obj.set_endpoints(start_x, start_y, x, start_y)
    elif obj.kind == AnnotationKind.ARROW:
        obj.set_endpoints(start_x, start_y, x, y)
    elif obj.kind == AnnotationKind.FREEHAND:
        obj.points.append((x, y))
        obj.sync_path_bounds()
    else:
        obj.left = min(start_x, x)
        obj.top = min(start_y, y)
        obj.width = abs(x - start_x)
        obj.height = abs(y - start_y)


def drag_too_small(obj: Annotation, min_size: float) -> bool:
    """
    Whether a finished drag is too small to keep.

    Line kinds only measure their length, since underline and strike
    are always zero pixels tall.
    """
    bounds = obj.bounds()
    if obj.kind in LINE_KINDS or obj.kind == AnnotationKind.FREEHAND:
        return max(bounds.width, bounds.height) < min_size
    return bounds.width < min_size or bounds.height < min_size
