import pytest

from inkform.core.annotations import AnnotationKind
from inkform.core.document import load_form_fields
from inkform.core.document.form_fields import parse_signature_label


class TestParseSignatureLabel:
    def test_label_from_name(self):
        assert parse_signature_label("sig_Tenant_Name_1_2") == "Tenant Name"

    def test_fallback(self):
        assert parse_signature_label("sig_broken") == "Signature"


class TestLoadFormFields:
    def test_reads_every_widget(self, form_pdf_bytes):
        fields = {f.name: f for f in load_form_fields(form_pdf_bytes)}
        assert set(fields) == {"name", "agree", "color", "sig_Tenant_Name_1_2"}

        name = fields["name"]
        assert name.kind == AnnotationKind.TEXTFIELD
        assert name.value == "Alice"
        assert name.page_index == 0
        assert name.rect == pytest.approx((50, 50, 250, 80), abs=0.5)
        assert (name.page_width, name.page_height) == pytest.approx((612, 792))

        assert fields["agree"].kind == AnnotationKind.CHECKBOX
        assert fields["agree"].checked

        color = fields["color"]
        assert color.kind == AnnotationKind.DROPDOWN
        assert color.options == ("Red", "Green", "Blue")
        assert color.value == "Green"

    def test_signature_prefix_maps_to_signature_field(self, form_pdf_bytes):
        fields = {f.name: f for f in load_form_fields(form_pdf_bytes)}
        slot = fields["sig_Tenant_Name_1_2"]
        assert slot.kind == AnnotationKind.SIGNATURE_FIELD
        assert slot.label == "Tenant Name"

    def test_plain_document_has_no_fields(self, pdf_bytes):
        assert load_form_fields(pdf_bytes) == []

    def test_unreadable_bytes(self):
        assert load_form_fields(b"not a pdf") == []
