import json

import fitz
import pytest

from inkform.core.annotations import Annotation, AnnotationKind, SignatureMeta
from inkform.core.document import DocumentRegistry, parse_signing_metadata
from inkform.core.document.signing_metadata import SigningMetadata, Signer
from inkform.core.errors import ExportError
from inkform.core.export import PDFExporter, font_for
from inkform.core.export.pdf_exporter import _HANDLERS
from inkform.core.page import ViewPage


@pytest.fixture
def registry(make_pdf):
    reg = DocumentRegistry()
    reg.load_main(make_pdf(pages=2, prefix="Main"), "lease.pdf")
    return reg


@pytest.fixture
def pages():
    return [ViewPage("main:1", "main", 1), ViewPage("main:2", "main", 2)]


@pytest.fixture
def exporter():
    return PDFExporter()


def export_doc(exporter, registry, pages, annotations, scale=1.0, **kwargs):
    data = exporter.export(registry, pages, annotations, scale, **kwargs)
    return fitz.open(stream=data, filetype="pdf")


def widgets_by_name(page):
    return {w.field_name: w for w in page.widgets()}


class TestFontMapping:
    @pytest.mark.parametrize("family, weight, style, expected", [
        ("Arial", "normal", "normal", "helv"),
        ("Helvetica", "bold", "normal", "hebo"),
        ("Times New Roman", "normal", "italic", "tiit"),
        ("Georgia, serif", "700", "italic", "tibi"),
        ("Courier New", "normal", "normal", "cour"),
        ("monospace", "bold", "normal", "cobo"),
        ("sans-serif", "400", "normal", "helv"),
    ])
    def test_font_for(self, family, weight, style, expected):
        assert font_for(family, weight, style) == expected


class TestExporter:
    def test_every_kind_has_a_handler(self):
        assert set(_HANDLERS) == set(AnnotationKind)

    def test_pages_are_copied_in_order(self, exporter, registry, pages):
        doc = export_doc(exporter, registry, list(reversed(pages)), {})
        assert doc.page_count == 2
        assert "Main 2" in doc[0].get_text()
        assert "Main 1" in doc[1].get_text()

    def test_view_rotation_applied(self, exporter, registry, pages):
        pages[1].rotate()
        doc = export_doc(exporter, registry, pages, {})
        assert doc[0].rotation == 0
        assert doc[1].rotation == 90

    def test_field_position_projected_to_document_space(self, exporter, registry, pages):
        field = Annotation(kind=AnnotationKind.TEXTFIELD, left=100, top=200,
                           width=200, height=60, field_name="name", font_size=24)
        doc = export_doc(exporter, registry, pages, {"main:1": [field]}, scale=2.0)
        rect = widgets_by_name(doc[0])["name"].rect
        assert tuple(rect) == pytest.approx((50, 100, 150, 130), abs=0.5)

    def test_textfield_and_checkbox_become_widgets(self, exporter, registry, pages):
        text = Annotation(kind=AnnotationKind.TEXTFIELD, left=50, top=50, width=200,
                          height=30, field_name="full_name", field_value="Ada Lovelace")
        box = Annotation(kind=AnnotationKind.CHECKBOX, left=50, top=100, width=20,
                         height=20, field_name="agree", checked=True)
        doc = export_doc(exporter, registry, pages, {"main:2": [text, box]})

        assert not list(doc[0].widgets())
        widgets = widgets_by_name(doc[1])
        assert widgets["full_name"].field_value == "Ada Lovelace"
        assert widgets["agree"].field_type == fitz.PDF_WIDGET_TYPE_CHECKBOX
        assert widgets["agree"].field_value not in (None, False, "", "Off")

    def test_dropdown_widget(self, exporter, registry, pages):
        dropdown = Annotation(kind=AnnotationKind.DROPDOWN, left=10, top=10, width=200,
                              height=30, field_name="color", options=["Red", "Blue"],
                              selected_option="Blue")
        doc = export_doc(exporter, registry, pages, {"main:1": [dropdown]})
        widget = widgets_by_name(doc[0])["color"]
        assert widget.field_type == fitz.PDF_WIDGET_TYPE_COMBOBOX
        assert widget.field_value == "Blue"

    def test_unnamed_field_is_drawn_statically(self, exporter, registry, pages):
        field = Annotation(kind=AnnotationKind.TEXTFIELD, left=50, top=50, width=200,
                           height=30, field_value="Visible")
        doc = export_doc(exporter, registry, pages, {"main:1": [field]})
        assert not list(doc[0].widgets())
        assert doc[0].get_drawings()
        assert "Visible" in doc[0].get_text()

    def test_duplicate_name_falls_back_to_placeholder(self, exporter, registry, pages):
        first = Annotation(kind=AnnotationKind.TEXTFIELD, left=50, top=50, width=200,
                           height=30, field_name="dup")
        second = Annotation(kind=AnnotationKind.TEXTFIELD, left=50, top=150, width=200,
                            height=30, field_name="dup", field_value="Second")
        doc = export_doc(exporter, registry, pages, {"main:1": [first, second]})
        assert [w.field_name for w in doc[0].widgets()] == ["dup"]
        assert "Second" in doc[0].get_text()

    def test_text_is_written(self, exporter, registry, pages):
        text = Annotation(kind=AnnotationKind.TEXT, left=100, top=300, width=200, height=40,
                          text="Hello there\nSecond line", fill="#0000ff", font_size=16)
        doc = export_doc(exporter, registry, pages, {"main:1": [text]})
        content = doc[0].get_text()
        assert "Hello there" in content
        assert "Second line" in content

    def test_bad_image_is_skipped(self, exporter, registry, pages):
        image = Annotation(kind=AnnotationKind.IMAGE, left=0, top=0, width=10, height=10,
                           image_data=b"GIF89a not supported")
        doc = export_doc(exporter, registry, pages, {"main:1": [image]})
        assert doc.page_count == 2
        assert not doc[0].get_images()

    def test_every_kind_exports(self, exporter, registry, pages, png_bytes):
        arrow = Annotation(kind=AnnotationKind.ARROW, stroke="#000", stroke_width=2)
        arrow.set_endpoints(10, 10, 200, 120)
        strike = Annotation(kind=AnnotationKind.STRIKE, stroke="red", stroke_width=1)
        strike.set_endpoints(10, 300, 200, 300)
        ink = Annotation(kind=AnnotationKind.FREEHAND, stroke="#333", stroke_width=3,
                         points=[(300, 300), (320, 340), (360, 310)])
        ink.sync_path_bounds()
        annotations = [
            Annotation(kind=AnnotationKind.WHITEOUT, left=0, top=0, width=50, height=20),
            Annotation(kind=AnnotationKind.HIGHLIGHT, left=0, top=30, width=50, height=20,
                       fill="#fff59d", opacity=0.5),
            Annotation(kind=AnnotationKind.RECT, left=60, top=0, width=50, height=20,
                       stroke="#000", stroke_width=1, fill="transparent"),
            Annotation(kind=AnnotationKind.ELLIPSE, left=120, top=0, width=50, height=20,
                       stroke="#000", stroke_width=1, fill="rgb(0, 128, 0)"),
            arrow, strike, ink,
            Annotation(kind=AnnotationKind.NOTE, left=400, top=400, width=140, height=70,
                       note_text="Check this", font_size=12),
            Annotation(kind=AnnotationKind.STAMP, left=400, top=500, width=170, height=44,
                       stamp_text="approved", stroke="#dc2626", font_size=20),
            Annotation(kind=AnnotationKind.IMAGE, left=10, top=600, width=40, height=20,
                       image_data=png_bytes),
            Annotation(kind=AnnotationKind.RADIO, left=10, top=700, width=20, height=20,
                       field_name="plan", checked=True),
            Annotation(kind=AnnotationKind.DATE, left=100, top=700, width=200, height=30,
                       field_name="when", field_value="2024-01-31"),
            Annotation(kind=AnnotationKind.SIGNATURE_FIELD, left=300, top=700, width=200,
                       height=50, field_name="sig_Tenant_1_1", signature_label="Tenant"),
            Annotation(kind=AnnotationKind.SIGNATURE_FIELD, left=300, top=640, width=200,
                       height=50, signature_label="Unnamed"),
        ]
        doc = export_doc(exporter, registry, pages, {"main:1": annotations})
        page = doc[0]
        assert len(page.get_images()) >= 2
        assert {"plan", "when", "sig_Tenant_1_1"} <= set(widgets_by_name(page))
        assert "APPROVED" in page.get_text()
        assert "Check this" in page.get_text()

    def test_metadata(self, exporter, registry, pages):
        doc = export_doc(exporter, registry, pages, {})
        assert doc.metadata["producer"] == "Inkform"
        assert doc.metadata["creator"] == "Inkform"
        assert doc.metadata["modDate"]

    def test_progress_reported_per_page(self, exporter, registry, pages):
        seen = []
        exporter.progress_signal.connect(lambda current, total: seen.append((current, total)))
        exporter.export(registry, pages, {}, 1.0)
        assert seen == [(1, 2), (2, 2)]

    def test_unknown_document_aborts(self, exporter, registry):
        with pytest.raises(ExportError):
            exporter.export(registry, [ViewPage("x:1", "missing", 1)], {}, 1.0)

    def test_invalid_scale_aborts(self, exporter, registry, pages):
        with pytest.raises(ExportError):
            exporter.export(registry, pages, {}, 0)


class TestSignatureAudit:
    @pytest.fixture
    def signature(self, png_bytes):
        meta = SignatureMeta("Ada Lovelace", True, True, document_filename="lease.pdf",
                             signer_email="ada@example.com", document_hash="abc123",
                             timestamp="2024-01-31T10:00:00.000Z")
        return Annotation(kind=AnnotationKind.SIGNATURE, left=100, top=600, width=40,
                          height=20, scale_x=5, scale_y=5, image_data=png_bytes,
                          signature_meta=meta)

    def test_audit_attachment(self, exporter, registry, pages, signature):
        doc = export_doc(exporter, registry, pages, {"main:2": [signature]})
        assert "signatures-audit.json" in doc.embfile_names()

        entries = json.loads(doc.embfile_get("signatures-audit.json"))
        assert len(entries) == 1
        entry = entries[0]
        assert entry["signerName"] == "Ada Lovelace"
        assert entry["signerEmail"] == "ada@example.com"
        assert entry["intentAccepted"] is True
        assert entry["consentAccepted"] is True
        assert entry["documentFilename"] == "lease.pdf"
        assert entry["documentHash"] == "abc123"
        assert entry["pageNum"] == 2
        assert entry["bounds"] == pytest.approx(
            {"left": 100, "bottom": 92, "width": 200, "height": 100})

    def test_signers_recorded_in_keywords(self, exporter, registry, pages, signature):
        previous = SigningMetadata(signers=[Signer("Grace", "2024-01-01T00:00:00.000Z")])
        doc = export_doc(exporter, registry, pages, {"main:1": [signature]}, signing=previous)
        metadata = parse_signing_metadata(doc.metadata["keywords"])
        assert [s.name for s in metadata.signers] == ["Grace", "Ada Lovelace"]

    def test_no_attachment_without_signatures(self, exporter, registry, pages):
        doc = export_doc(exporter, registry, pages, {})
        assert doc.embfile_count() == 0


def radio(name, checked, value, top=100):
    return Annotation(kind=AnnotationKind.RADIO, left=50, top=top, width=20, height=20,
                      field_name=name, checked=checked, radio_value=value)


def appearance_state(doc, widget):
    return doc.xref_get_key(widget.xref, "AS")[1]


class TestRadioGroups:
    def test_checked_radio_is_a_real_field(self, exporter, registry, pages):
        doc = export_doc(exporter, registry, pages, {"main:1": [radio("plan", True, "basic")]})
        widget = widgets_by_name(doc[0])["plan"]
        assert widget.field_type == fitz.PDF_WIDGET_TYPE_RADIOBUTTON
        assert tuple(widget.rect) == pytest.approx((50, 100, 70, 120), abs=0.5)
        assert appearance_state(doc, widget) == "/basic"

    def test_group_across_pages_keeps_one_choice(self, exporter, registry, pages):
        annotations = {
            "main:1": [radio("plan", False, "basic")],
            "main:2": [radio("plan", True, "premium")],
        }
        doc = export_doc(exporter, registry, pages, annotations)
        first = widgets_by_name(doc[0])["plan"]
        second = widgets_by_name(doc[1])["plan"]

        assert appearance_state(doc, first) == "/Off"
        assert appearance_state(doc, second) == "/premium"

        parent = doc.xref_get_key(first.xref, "Parent")
        assert parent[0] == "xref"
        assert doc.xref_get_key(second.xref, "Parent") == parent
        parent_xref = int(parent[1].split()[0])
        assert doc.xref_get_key(parent_xref, "V")[1] == "/premium"
        assert doc.xref_get_key(parent_xref, "Kids")[0] == "array"

    def test_radio_cannot_reuse_a_text_field_name(self, exporter, registry, pages):
        text = Annotation(kind=AnnotationKind.TEXTFIELD, left=50, top=50, width=200,
                          height=30, field_name="plan")
        doc = export_doc(exporter, registry, pages,
                         {"main:1": [text, radio("plan", True, "basic", top=200)]})
        widgets = list(doc[0].widgets())
        assert [w.field_type for w in widgets] == [fitz.PDF_WIDGET_TYPE_TEXT]


class TestItemFailures:
    def test_failed_widget_is_removed_before_placeholder(self, exporter, registry, pages,
                                                         monkeypatch):
        add_widget = fitz.Page.add_widget

        def add_then_fail(page, widget):
            add_widget(page, widget)
            raise ValueError("bad xref")

        monkeypatch.setattr(fitz.Page, "add_widget", add_then_fail)
        field = Annotation(kind=AnnotationKind.TEXTFIELD, left=50, top=50, width=200,
                           height=30, field_name="name", field_value="Fallback")
        doc = export_doc(exporter, registry, pages, {"main:1": [field]})
        assert not list(doc[0].widgets())
        assert "Fallback" in doc[0].get_text()

    def test_bad_style_data_skips_only_that_item(self, exporter, registry, pages):
        broken = Annotation(kind=AnnotationKind.TEXT, left=10, top=10, width=100, height=20,
                            text="Broken", font_size="large")
        fine = Annotation(kind=AnnotationKind.TEXT, left=10, top=100, width=100, height=20,
                          text="Still here")
        doc = export_doc(exporter, registry, pages, {"main:1": [broken, fine]})
        text = doc[0].get_text()
        assert "Still here" in text
        assert "Broken" not in text


class TestImportedWidgets:
    def test_only_imported_widgets_are_stripped(self, exporter, form_pdf_bytes):
        registry = DocumentRegistry()
        registry.load_main(form_pdf_bytes, "form.pdf")
        page = ViewPage("main:1", "main", 1)
        doc = export_doc(exporter, registry, [page], {},
                         imported_fields={"main": {"name", "agree"}})
        assert set(widgets_by_name(doc[0])) == {"color", "sig_Tenant_Name_1_2"}
