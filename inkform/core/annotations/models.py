"""
Annotation data model shared by the canvas, history and exporter.
"""
import base64
import copy
import uuid
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from inkform.helpers.geometry import CanvasRect


class AnnotationKind(Enum):
    TEXT = "text"
    WHITEOUT = "whiteout"
    HIGHLIGHT = "highlight"
    UNDERLINE = "underline"
    STRIKE = "strike"
    RECT = "rect"
    ELLIPSE = "ellipse"
    ARROW = "arrow"
    NOTE = "note"
    STAMP = "stamp"
    IMAGE = "image"
    FREEHAND = "freehand"
    TEXTFIELD = "textfield"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DROPDOWN = "dropdown"
    DATE = "date"
    SIGNATURE = "signature"
    SIGNATURE_FIELD = "signature-field"


# Kinds that carry a field name and become form fields on export
FIELD_KINDS = frozenset({
    AnnotationKind.TEXTFIELD,
    AnnotationKind.CHECKBOX,
    AnnotationKind.RADIO,
    AnnotationKind.DROPDOWN,
    AnnotationKind.DATE,
    AnnotationKind.SIGNATURE_FIELD,
})

# Kinds a signer interacts with in fill mode
FILLABLE_KINDS = FIELD_KINDS | {AnnotationKind.SIGNATURE}

# Kinds whose geometry is stored as endpoints or a point list
LINE_KINDS = frozenset({AnnotationKind.UNDERLINE, AnnotationKind.STRIKE, AnnotationKind.ARROW})
PATH_KINDS = LINE_KINDS | {AnnotationKind.FREEHAND}

SNAPSHOT_VERSION = 1

_COMMON_FIELDS = (
    'object_id', 'left', 'top', 'width', 'height',
    'scale_x', 'scale_y', 'opacity', 'locked',
)

# Allow-list of persisted attributes per kind, on top of the common ones
PERSISTED_FIELDS: Dict[AnnotationKind, Tuple[str, ...]] = {
    AnnotationKind.TEXT: ('text', 'fill', 'font_size', 'font_family',
                          'font_weight', 'font_style', 'text_align'),
    AnnotationKind.WHITEOUT: ('fill',),
    AnnotationKind.HIGHLIGHT: ('fill',),
    AnnotationKind.UNDERLINE: ('stroke', 'stroke_width', 'x1', 'y1', 'x2', 'y2'),
    AnnotationKind.STRIKE: ('stroke', 'stroke_width', 'x1', 'y1', 'x2', 'y2'),
    AnnotationKind.RECT: ('fill', 'stroke', 'stroke_width'),
    AnnotationKind.ELLIPSE: ('fill', 'stroke', 'stroke_width'),
    AnnotationKind.ARROW: ('stroke', 'stroke_width', 'x1', 'y1', 'x2', 'y2'),
    AnnotationKind.NOTE: ('note_text', 'font_size'),
    AnnotationKind.STAMP: ('stamp_text', 'stroke', 'font_size'),
    AnnotationKind.IMAGE: ('image_data',),
    AnnotationKind.FREEHAND: ('points', 'stroke', 'stroke_width'),
    AnnotationKind.TEXTFIELD: ('field_name', 'field_value', 'font_size'),
    AnnotationKind.CHECKBOX: ('field_name', 'checked'),
    AnnotationKind.RADIO: ('field_name', 'checked', 'radio_value'),
    AnnotationKind.DROPDOWN: ('field_name', 'options', 'selected_option', 'font_size'),
    AnnotationKind.DATE: ('field_name', 'field_value', 'font_size'),
    AnnotationKind.SIGNATURE: ('image_data', 'signature_meta'),
    AnnotationKind.SIGNATURE_FIELD: ('field_name', 'signature_label'),
}


def new_object_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class SignatureMeta:
    """Audit metadata captured when a signature is applied."""
    signer_name: str
    intent_accepted: bool
    consent_accepted: bool
    document_filename: str = ""
    signer_email: Optional[str] = None
    document_hash: Optional[str] = None
    timestamp: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'signer_name': self.signer_name,
            'signer_email': self.signer_email,
            'intent_accepted': self.intent_accepted,
            'consent_accepted': self.consent_accepted,
            'document_filename': self.document_filename,
            'document_hash': self.document_hash,
            'timestamp': self.timestamp,
        }

    @staticmethod
    def from_dict(data: dict) -> 'SignatureMeta':
        return SignatureMeta(
            signer_name=data.get('signer_name', ''),
            signer_email=data.get('signer_email'),
            intent_accepted=bool(data.get('intent_accepted', False)),
            consent_accepted=bool(data.get('consent_accepted', False)),
            document_filename=data.get('document_filename', ''),
            document_hash=data.get('document_hash'),
            timestamp=data.get('timestamp'),
        )


@dataclass(eq=False)
class Annotation:
    """
    A single overlay object on one page canvas.

    Geometry is kept in canvas pixels at the current display scale. Box-like
    kinds use ``left/top/width/height`` multiplied by ``scale_x/scale_y``;
    line and freehand kinds keep absolute endpoints or points and mirror
    their bounding box into ``left/top/width/height``.
    """
    kind: AnnotationKind
    left: float = 0.0
    top: float = 0.0
    width: float = 0.0
    height: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    opacity: float = 1.0
    locked: bool = False
    object_id: str = field(default_factory=new_object_id)

    # Style
    fill: Optional[str] = None
    stroke: Optional[str] = None
    stroke_width: float = 0.0
    font_size: float = 16.0
    font_family: str = "Arial"
    font_weight: str = "normal"
    font_style: str = "normal"
    text_align: str = "left"

    # For text, note and stamp objects
    text: str = ""
    note_text: str = ""
    stamp_text: str = ""

    # For line kinds (underline, strike, arrow)
    x1: float = 0.0
    y1: float = 0.0
    x2: float = 0.0
    y2: float = 0.0

    # For freehand paths: absolute canvas points
    points: List[Tuple[float, float]] = field(default_factory=list)

    # For image and signature objects: raw PNG/JPEG bytes
    image_data: Optional[bytes] = None
    signature_meta: Optional[SignatureMeta] = None

    # For form fields
    field_name: str = ""
    field_value: str = ""
    checked: bool = False
    options: List[str] = field(default_factory=list)
    selected_option: str = ""
    radio_value: str = ""
    signature_label: str = ""

    # Runtime interactivity, never persisted
    selectable: bool = True
    movable: bool = True
    resizable: bool = True

    @property
    def is_field(self) -> bool:
        return self.kind in FIELD_KINDS

    @property
    def is_fillable(self) -> bool:
        return self.kind in FILLABLE_KINDS

    def bounds(self) -> CanvasRect:
        """Bounding box in canvas pixels."""
        if self.kind in PATH_KINDS:
            return CanvasRect(self.left, self.top, self.width, self.height)
        return CanvasRect(self.left, self.top,
                          self.width * self.scale_x, self.height * self.scale_y)

    @property
    def effective_font_size(self) -> float:
        return self.font_size * self.scale_y

    @property
    def effective_stroke_width(self) -> float:
        if self.kind in PATH_KINDS:
            return self.stroke_width
        return self.stroke_width * self.scale_x

    def set_endpoints(self, x1: float, y1: float, x2: float, y2: float) -> None:
        self.x1, self.y1, self.x2, self.y2 = x1, y1, x2, y2
        self.sync_path_bounds()

    def sync_path_bounds(self) -> None:
        """Mirror the extent of endpoints or points into the box fields."""
        if self.kind == AnnotationKind.FREEHAND:
            if not self.points:
                return
            xs = [p[0] for p in self.points]
            ys = [p[1] for p in self.points]
            rect = CanvasRect(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))
        elif self.kind in LINE_KINDS:
            rect = CanvasRect.from_points(self.x1, self.y1, self.x2, self.y2)
        else:
            return
        self.left, self.top, self.width, self.height = rect.left, rect.top, rect.width, rect.height

    def move_by(self, dx: float, dy: float) -> None:
        self.left += dx
        self.top += dy
        if self.kind in LINE_KINDS:
            self.x1 += dx
            self.x2 += dx
            self.y1 += dy
            self.y2 += dy
        elif self.kind == AnnotationKind.FREEHAND:
            self.points = [(x + dx, y + dy) for x, y in self.points]

    def scale_geometry(self, factor: float) -> None:
        """Rescale stored geometry after the display scale changed."""
        if self.kind in LINE_KINDS:
            self.set_endpoints(self.x1 * factor, self.y1 * factor,
                               self.x2 * factor, self.y2 * factor)
            self.stroke_width *= factor
        elif self.kind == AnnotationKind.FREEHAND:
            self.points = [(x * factor, y * factor) for x, y in self.points]
            self.stroke_width *= factor
            self.sync_path_bounds()
        else:
            self.left *= factor
            self.top *= factor
            self.scale_x *= factor
            self.scale_y *= factor

    def copy(self) -> 'Annotation':
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the persisted attributes of this annotation."""
        data: Dict[str, Any] = {'kind': self.kind.value}
        for name in _COMMON_FIELDS + PERSISTED_FIELDS[self.kind]:
            value = getattr(self, name)
            if name == 'points':
                value = [[x, y] for x, y in value]
            elif name == 'options':
                value = list(value)
            elif name == 'image_data':
                value = base64.b64encode(value).decode('ascii') if value else None
            elif name == 'signature_meta':
                value = value.to_dict() if value else None
            data[name] = value
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'Annotation':
        """Create an annotation from :meth:`to_dict` output."""
        kind = AnnotationKind(data['kind'])
        allowed = set(_COMMON_FIELDS + PERSISTED_FIELDS[kind])
        known = {f.name for f in fields(Annotation)}
        kwargs: Dict[str, Any] = {}
        for name, value in data.items():
            if name not in allowed or name not in known:
                continue
            if name == 'points':
                value = [tuple(p) for p in value or []]
            elif name == 'options':
                value = list(value or [])
            elif name == 'image_data':
                value = base64.b64decode(value) if value else None
            elif name == 'signature_meta':
                value = SignatureMeta.from_dict(value) if value else None
            kwargs[name] = value
        return Annotation(kind=kind, **kwargs)
