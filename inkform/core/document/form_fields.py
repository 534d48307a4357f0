"""
Read existing AcroForm fields so they can be edited as overlay objects.
"""
import logging
import re
from dataclasses import dataclass
from typing import List, Tuple

import fitz  # PyMuPDF

from inkform.core.annotations.models import AnnotationKind

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sig_"
_SIGNATURE_NAME = re.compile(r"^sig_(.+)_\d+_\d+$")

_WIDGET_KINDS = {
    fitz.PDF_WIDGET_TYPE_TEXT: AnnotationKind.TEXTFIELD,
    fitz.PDF_WIDGET_TYPE_CHECKBOX: AnnotationKind.CHECKBOX,
    fitz.PDF_WIDGET_TYPE_RADIOBUTTON: AnnotationKind.RADIO,
    fitz.PDF_WIDGET_TYPE_COMBOBOX: AnnotationKind.DROPDOWN,
    fitz.PDF_WIDGET_TYPE_LISTBOX: AnnotationKind.DROPDOWN,
    fitz.PDF_WIDGET_TYPE_SIGNATURE: AnnotationKind.SIGNATURE_FIELD,
}


@dataclass(frozen=True)
class FieldDescriptor:
    """One widget of a form field, positioned in visible page space (origin top-left)."""
    kind: AnnotationKind
    name: str
    page_index: int
    rect: Tuple[float, float, float, float]
    page_width: float
    page_height: float
    value: str = ""
    checked: bool = False
    options: Tuple[str, ...] = ()
    label: str = ""


def parse_signature_label(name: str) -> str:
    """``sig_Tenant_Name_1_2`` -> ``Tenant Name``."""
    match = _SIGNATURE_NAME.match(name)
    return match.group(1).replace('_', ' ') if match else "Signature"


def _option_text(option) -> str:
    # Choice entries are either strings or (export value, display text) pairs
    if isinstance(option, (list, tuple)):
        return str(option[0])
    return str(option)


def _describe(widget: fitz.Widget, page: fitz.Page, page_index: int) -> FieldDescriptor:
    name = widget.field_name or ""
    kind = _WIDGET_KINDS[widget.field_type]
    rect = widget.rect * page.rotation_matrix
    rect.normalize()

    value = ""
    checked = False
    options: Tuple[str, ...] = ()
    label = ""

    if kind == AnnotationKind.TEXTFIELD:
        value = widget.field_value or ""
    elif kind == AnnotationKind.CHECKBOX:
        checked = widget.field_value not in (None, False, "", "Off")
    elif kind == AnnotationKind.RADIO:
        on_state = widget.on_state()
        value = on_state if isinstance(on_state, str) else ""
        checked = widget.field_value not in (None, False, "", "Off")
    elif kind == AnnotationKind.DROPDOWN:
        options = tuple(_option_text(o) for o in (widget.choice_values or []))
        current = widget.field_value
        if isinstance(current, (list, tuple)):
            current = current[0] if current else ""
        value = str(current or "")
    elif kind == AnnotationKind.SIGNATURE_FIELD:
        label = name

    if name.startswith(SIGNATURE_PREFIX):
        kind = AnnotationKind.SIGNATURE_FIELD
        label = parse_signature_label(name)

    return FieldDescriptor(
        kind=kind,
        name=name,
        page_index=page_index,
        rect=(rect.x0, rect.y0, rect.x1, rect.y1),
        page_width=page.rect.width,
        page_height=page.rect.height,
        value=value,
        checked=checked,
        options=options,
        label=label,
    )


def load_form_fields(data: bytes) -> List[FieldDescriptor]:
    """
    Extract the form field widgets of a PDF.

    Args:
        data: PDF bytes

    Returns:
        One descriptor per widget; an empty list when the document cannot be read
    """
    results: List[FieldDescriptor] = []
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError):
        logger.warning("Could not load form fields from PDF", exc_info=True)
        return results

    with doc:
        if not doc.is_form_pdf:
            return results
        for page_index, page in enumerate(doc):
            for widget in page.widgets():
                if widget.field_type not in _WIDGET_KINDS:
                    logger.debug("Skipping %s widget %s", widget.field_type_string, widget.field_name)
                    continue
                results.append(_describe(widget, page, page_index))
    return results
