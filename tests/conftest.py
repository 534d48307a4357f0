"""
Shared fixtures: PDFs and images are generated on the fly with PyMuPDF.
"""
import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import fitz  # noqa: E402
import pytest  # noqa: E402

from inkform.config import EditorConfig  # noqa: E402
from inkform.core.annotations import Annotation, AnnotationKind, AnnotationManager  # noqa: E402

PAGE_WIDTH = 612
PAGE_HEIGHT = 792


def build_pdf(pages=3, prefix="Page", width=PAGE_WIDTH, height=PAGE_HEIGHT, rotation=0):
    doc = fitz.open()
    for n in range(1, pages + 1):
        page = doc.new_page(width=width, height=height)
        page.insert_text((72, 72), f"{prefix} {n}", fontsize=14)
        if rotation:
            page.set_rotation(rotation)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def make_pdf():
    """Factory for simple labelled PDFs."""
    return build_pdf


@pytest.fixture
def pdf_bytes():
    return build_pdf(pages=3, prefix="Main")


@pytest.fixture
def form_pdf_bytes():
    """One page carrying a text field, a checkbox, a combobox and a signature slot."""
    doc = fitz.open()
    page = doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)

    text = fitz.Widget()
    text.field_type = fitz.PDF_WIDGET_TYPE_TEXT
    text.field_name = "name"
    text.rect = fitz.Rect(50, 50, 250, 80)
    text.field_value = "Alice"
    page.add_widget(text)

    checkbox = fitz.Widget()
    checkbox.field_type = fitz.PDF_WIDGET_TYPE_CHECKBOX
    checkbox.field_name = "agree"
    checkbox.rect = fitz.Rect(50, 100, 70, 120)
    checkbox.field_value = True
    page.add_widget(checkbox)

    combo = fitz.Widget()
    combo.field_type = fitz.PDF_WIDGET_TYPE_COMBOBOX
    combo.field_name = "color"
    combo.rect = fitz.Rect(50, 140, 250, 170)
    combo.choice_values = ["Red", "Green", "Blue"]
    combo.field_value = "Green"
    page.add_widget(combo)

    signature = fitz.Widget()
    signature.field_type = fitz.PDF_WIDGET_TYPE_TEXT
    signature.field_name = "sig_Tenant_Name_1_2"
    signature.rect = fitz.Rect(50, 200, 250, 250)
    page.add_widget(signature)

    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def png_bytes():
    """A 40x20 grey PNG."""
    pix = fitz.Pixmap(fitz.csRGB, fitz.IRect(0, 0, 40, 20), False)
    pix.clear_with(120)
    return pix.tobytes("png")


@pytest.fixture
def config():
    return EditorConfig()


@pytest.fixture
def manager(config):
    """Manager with two US-letter canvases at scale 1."""
    mgr = AnnotationManager(config)
    mgr.create_canvas("p1", PAGE_WIDTH, PAGE_HEIGHT)
    mgr.create_canvas("p2", PAGE_WIDTH, PAGE_HEIGHT)
    return mgr


@pytest.fixture
def make_field():
    """Factory for form-field annotations."""
    def _make(kind, left=10.0, top=10.0, width=100.0, height=30.0, **attrs):
        return Annotation(kind=AnnotationKind(kind), left=left, top=top,
                          width=width, height=height, **attrs)
    return _make
