"""
Compiles view pages and their overlay annotations into a new PDF.
"""
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Collection, Dict, List, Mapping, Optional, Sequence

import fitz  # PyMuPDF
from PyQt5.QtCore import QObject, pyqtSignal

from inkform.config import EditorConfig
from inkform.core.annotations.models import Annotation, AnnotationKind
from inkform.core.document.registry import MAIN_DOCUMENT_ID, DocumentRegistry
from inkform.core.document.signing_metadata import (
    Signer,
    SigningMetadata,
    build_signing_keywords,
    parse_signing_metadata,
)
from inkform.core.document.writer import FIELD_BORDER, DocumentWriter
from inkform.core.errors import (
    DocumentLoadError,
    ExportError,
    FieldCreationError,
)
from inkform.core.page.models import ViewPage
from inkform.helpers.colors import is_transparent, parse_color
from inkform.helpers.geometry import DocRect, canvas_to_document
from inkform.helpers.images import sniff_image_format

logger = logging.getLogger(__name__)

LINE_HEIGHT = 1.2
NOTE_FILL = "#fff9c4"
NOTE_BORDER = "#f59e0b"
NOTE_TEXT = "#111827"
STAMP_COLOR = "#dc2626"
PLACEHOLDER_TEXT = (0.42, 0.45, 0.5)
NOTE_PADDING = 6.0

# Base-14 font names by family, indexed by (bold, italic)
_FONTS = {
    'helvetica': {(False, False): 'helv', (True, False): 'hebo',
                  (False, True): 'heit', (True, True): 'hebi'},
    'times': {(False, False): 'tiro', (True, False): 'tibo',
              (False, True): 'tiit', (True, True): 'tibi'},
    'courier': {(False, False): 'cour', (True, False): 'cobo',
                (False, True): 'coit', (True, True): 'cobi'},
}


def font_for(family: str, weight: str = "normal", style: str = "normal") -> str:
    """Map a CSS-like font family to a base-14 font name."""
    family = (family or "").lower()
    if 'times' in family or ('serif' in family and 'sans' not in family):
        base = 'times'
    elif 'courier' in family or 'mono' in family:
        base = 'courier'
    else:
        base = 'helvetica'
    weight = str(weight).lower()
    bold = weight in ('bold', 'bolder') or (weight.isdigit() and int(weight) >= 600)
    italic = str(style).lower() in ('italic', 'oblique')
    return _FONTS[base][(bold, italic)]


@dataclass(frozen=True)
class AuditEntry:
    """Who signed what, where and with which consent."""
    signer_name: str
    intent_accepted: bool
    consent_accepted: bool
    timestamp: str
    document_filename: str
    page_number: int
    bounds: DocRect
    signer_email: Optional[str] = None
    document_hash: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            'signerName': self.signer_name,
            'intentAccepted': self.intent_accepted,
            'consentAccepted': self.consent_accepted,
            'timestamp': self.timestamp,
            'documentFilename': self.document_filename,
            'pageNum': self.page_number,
            'bounds': self.bounds.to_dict(),
        }
        if self.signer_email:
            data['signerEmail'] = self.signer_email
        if self.document_hash:
            data['documentHash'] = self.document_hash
        return data


@dataclass
class _PageContext:
    writer: DocumentWriter
    page: fitz.Page
    scale: float
    page_height: float
    page_number: int
    audit: List[AuditEntry] = field(default_factory=list)

    def box(self, ann: Annotation) -> DocRect:
        return canvas_to_document(ann.bounds(), self.scale, self.page_height)

    def rect(self, ann: Annotation):
        """Annotation box as (x0, y0, x1, y1) in visible page space."""
        return self.box(ann).to_top_left(self.page_height)

    def point(self, x: float, y: float):
        return x / self.scale, y / self.scale


class PDFExporter(QObject):
    """Handles exporting view pages and annotations to PDF bytes."""

    # Pages done, pages total
    progress_signal = pyqtSignal(int, int)

    def __init__(self, config: Optional[EditorConfig] = None):
        super().__init__()
        self.config = config or EditorConfig()

    def export(self, registry: DocumentRegistry, view_pages: Sequence[ViewPage],
               annotations: Mapping[str, Sequence[Annotation]], scale: float,
               signing: Optional[SigningMetadata] = None,
               imported_fields: Optional[Mapping[str, Collection[str]]] = None) -> bytes:
        """
        Build the output document.

        Args:
            registry: Source documents
            view_pages: Pages to emit, in output order
            annotations: View page id to annotations, bottom to top
            scale: Display scale the annotation geometry is expressed at
            signing: Signing-flow metadata to extend with this export's signers
            imported_fields: Document id to the names of its own form widgets
                that were imported as annotations; those widgets are dropped
                from the copied pages and re-created from the annotations

        Returns:
            PDF bytes

        Raises:
            ExportError: if a source document cannot be opened or the result
                cannot be serialized
        """
        if scale <= 0:
            raise ExportError(f"Invalid display scale: {scale}")

        imported_fields = imported_fields or {}
        with DocumentWriter() as writer:
            for document_id in dict.fromkeys(vp.document_id for vp in view_pages):
                try:
                    writer.open_source(registry.get(document_id))
                except KeyError as e:
                    raise ExportError(f"Unknown document {document_id}") from e
                except DocumentLoadError as e:
                    raise ExportError(str(e)) from e

            audit: List[AuditEntry] = []
            total = len(view_pages)
            for index, view_page in enumerate(view_pages, start=1):
                document_id = view_page.document_id
                page = writer.copy_page(registry.get(document_id), view_page.source_page_number,
                                        strip_widgets=imported_fields.get(document_id, ()))
                source_rotation = page.rotation
                ctx = _PageContext(writer, page, scale, page.rect.height, index, audit)
                for ann in annotations.get(view_page.view_page_id, ()):
                    self._draw(ctx, ann)
                writer.set_rotation(page, source_rotation + view_page.rotation)
                self.progress_signal.emit(index, total)

            writer.set_metadata(
                modDate=fitz.get_pdf_now(),
                producer=self.config.producer,
                creator=self.config.creator,
                **self._inherited_metadata(writer, view_pages),
            )
            if audit:
                self._write_audit(writer, audit, signing)

            try:
                return writer.save()
            except (RuntimeError, ValueError) as e:
                raise ExportError(f"Could not serialize document: {e}") from e

    @staticmethod
    def _inherited_metadata(writer: DocumentWriter, view_pages: Sequence[ViewPage]) -> dict:
        if not view_pages:
            return {}
        source = writer.source_metadata(MAIN_DOCUMENT_ID) or \
            writer.source_metadata(view_pages[0].document_id)
        return {k: source[k] for k in ('title', 'author', 'subject', 'keywords') if source.get(k)}

    def _write_audit(self, writer: DocumentWriter,
                     audit: List[AuditEntry], signing: Optional[SigningMetadata]) -> None:
        payload = json.dumps([entry.to_dict() for entry in audit], indent=2)
        writer.attach(self.config.audit_attachment_name, payload.encode('utf-8'),
                      description="Signature audit trail")

        if signing is None:
            keywords = writer.source_metadata(MAIN_DOCUMENT_ID).get('keywords')
            signing = parse_signing_metadata(keywords) or SigningMetadata()
        signers = list(signing.signers) + [Signer(e.signer_name, e.timestamp) for e in audit]
        signing = SigningMetadata(
            signers=signers,
            expected_signers=list(signing.expected_signers),
            email_template=signing.email_template,
            original_sender_email=signing.original_sender_email,
            completion_to_emails=signing.completion_to_emails,
            completion_cc_emails=signing.completion_cc_emails,
            completion_bcc_emails=signing.completion_bcc_emails,
        )
        writer.set_metadata(keywords=build_signing_keywords(signing))
        logger.info("Attached audit trail with %d signature(s)", len(audit))

    def _draw(self, ctx: _PageContext, ann: Annotation) -> None:
        handler = _HANDLERS[ann.kind]
        try:
            handler(self, ctx, ann)
        except Exception:
            logger.warning("Skipped %s annotation %s on page %d",
                           ann.kind.value, ann.object_id, ctx.page_number, exc_info=True)

    # ------------------------------------------------------------------
    # Markup
    # ------------------------------------------------------------------

    def _draw_text(self, ctx: _PageContext, ann: Annotation) -> None:
        if not ann.text.strip():
            return
        fontsize = ann.font_size * ann.scale_y / ctx.scale
        fontname = font_for(ann.font_family, ann.font_weight, ann.font_style)
        color = parse_color(ann.fill)
        x, y = ctx.point(ann.left, ann.top)
        baseline = y + fontsize
        for line in ann.text.split('\n'):
            if line.strip():
                ctx.writer.draw_text(ctx.page, (x, baseline), line, fontname=fontname,
                                     fontsize=fontsize, color=color, opacity=ann.opacity)
            baseline += fontsize * LINE_HEIGHT

    def _draw_filled_box(self, ctx: _PageContext, ann: Annotation, default_fill: str) -> None:
        color = ann.fill or default_fill
        fill = None if is_transparent(color) else parse_color(color)
        ctx.writer.draw_rect(ctx.page, ctx.rect(ann), fill=fill, opacity=ann.opacity)

    def _draw_whiteout(self, ctx: _PageContext, ann: Annotation) -> None:
        self._draw_filled_box(ctx, ann, "#ffffff")

    def _draw_highlight(self, ctx: _PageContext, ann: Annotation) -> None:
        self._draw_filled_box(ctx, ann, "#fff59d")

    def _shape_style(self, ctx: _PageContext, ann: Annotation) -> dict:
        width = ann.effective_stroke_width / ctx.scale
        stroked = bool(ann.stroke) and width > 0 and not is_transparent(ann.stroke)
        return {
            'fill': None if is_transparent(ann.fill) else parse_color(ann.fill),
            'color': parse_color(ann.stroke) if stroked else None,
            'width': width if stroked else 0,
            'opacity': ann.opacity,
        }

    def _draw_rect(self, ctx: _PageContext, ann: Annotation) -> None:
        ctx.writer.draw_rect(ctx.page, ctx.rect(ann), **self._shape_style(ctx, ann))

    def _draw_ellipse(self, ctx: _PageContext, ann: Annotation) -> None:
        ctx.writer.draw_oval(ctx.page, ctx.rect(ann), **self._shape_style(ctx, ann))

    def _draw_line(self, ctx: _PageContext, ann: Annotation) -> None:
        ctx.writer.draw_line(
            ctx.page, ctx.point(ann.x1, ann.y1), ctx.point(ann.x2, ann.y2),
            color=parse_color(ann.stroke), width=ann.stroke_width / ctx.scale,
            opacity=ann.opacity,
        )

    def _draw_arrow(self, ctx: _PageContext, ann: Annotation) -> None:
        (x1, y1), (x2, y2) = ctx.point(ann.x1, ann.y1), ctx.point(ann.x2, ann.y2)
        width = ann.stroke_width / ctx.scale
        color = parse_color(ann.stroke)
        length = math.hypot(x2 - x1, y2 - y1)
        if length == 0:
            return

        head = min(max(width * 4, 8.0), length)
        ux, uy = (x2 - x1) / length, (y2 - y1) / length
        base_x, base_y = x2 - ux * head, y2 - uy * head
        half = head * 0.5
        wing1 = (base_x - uy * half, base_y + ux * half)
        wing2 = (base_x + uy * half, base_y - ux * half)

        ctx.writer.draw_line(ctx.page, (x1, y1), (base_x, base_y),
                             color=color, width=width, opacity=ann.opacity)
        ctx.writer.draw_polygon(ctx.page, [(x2, y2), wing1, wing2],
                                fill=color, opacity=ann.opacity)

    def _draw_note(self, ctx: _PageContext, ann: Annotation) -> None:
        x0, y0, x1, y1 = ctx.rect(ann)
        ctx.writer.draw_rect(ctx.page, (x0, y0, x1, y1), fill=parse_color(NOTE_FILL),
                             color=parse_color(NOTE_BORDER), width=1, opacity=ann.opacity)
        fontsize = ann.font_size * ann.scale_y / ctx.scale
        pad = NOTE_PADDING
        ctx.writer.draw_textbox(
            ctx.page, (x0 + pad, y0 + pad, x1 - pad, y1 - pad), ann.note_text or "Note",
            fontname='helv', fontsize=fontsize, color=parse_color(NOTE_TEXT),
        )

    def _draw_stamp(self, ctx: _PageContext, ann: Annotation) -> None:
        x0, y0, x1, y1 = ctx.rect(ann)
        color = parse_color(ann.stroke or STAMP_COLOR)
        ctx.writer.draw_rect(ctx.page, (x0, y0, x1, y1), color=color,
                             width=2, opacity=ann.opacity)
        fontsize = ann.font_size * ann.scale_y / ctx.scale
        top = (y0 + y1) / 2 - fontsize * 0.6
        ctx.writer.draw_textbox(
            ctx.page, (x0, top, x1, y1), (ann.stamp_text or "APPROVED").upper(),
            fontname='hebo', fontsize=fontsize, color=color,
            align=fitz.TEXT_ALIGN_CENTER, opacity=ann.opacity,
        )

    def _draw_freehand(self, ctx: _PageContext, ann: Annotation) -> None:
        if len(ann.points) < 2:
            return
        width = ann.stroke_width / ctx.scale
        pad = width / 2
        x0, y0, x1, y1 = ctx.rect(ann)
        points = [(x / ctx.scale - x0 + pad, y / ctx.scale - y0 + pad) for x, y in ann.points]
        size = (x1 - x0 + 2 * pad, y1 - y0 + 2 * pad)
        png = ctx.writer.render_polyline_png(points, size, color=parse_color(ann.stroke),
                                             width=width, opacity=ann.opacity)
        ctx.writer.insert_image(ctx.page, (x0 - pad, y0 - pad, x1 + pad, y1 + pad), png)

    def _draw_image(self, ctx: _PageContext, ann: Annotation) -> None:
        sniff_image_format(ann.image_data)
        ctx.writer.insert_image(ctx.page, ctx.rect(ann), ann.image_data)

    def _draw_signature(self, ctx: _PageContext, ann: Annotation) -> None:
        self._draw_image(ctx, ann)
        meta = ann.signature_meta
        if meta is None:
            return
        ctx.audit.append(AuditEntry(
            signer_name=meta.signer_name,
            signer_email=meta.signer_email,
            intent_accepted=meta.intent_accepted,
            consent_accepted=meta.consent_accepted,
            timestamp=meta.timestamp or "",
            document_filename=meta.document_filename,
            document_hash=meta.document_hash,
            page_number=ctx.page_number,
            bounds=ctx.box(ann),
        ))

    # ------------------------------------------------------------------
    # Form fields
    # ------------------------------------------------------------------

    def _field_or_placeholder(self, ctx: _PageContext, ann: Annotation,
                              create: Callable[[], None]) -> None:
        if ann.field_name:
            try:
                create()
                return
            except FieldCreationError:
                logger.warning("Could not create field %s, drawing a placeholder",
                               ann.field_name, exc_info=True)
        self._draw_placeholder(ctx, ann)

    def _field_font_size(self, ctx: _PageContext, ann: Annotation) -> float:
        return ann.font_size * ann.scale_y / ctx.scale

    def _draw_textfield(self, ctx: _PageContext, ann: Annotation) -> None:
        self._field_or_placeholder(ctx, ann, lambda: ctx.writer.add_text_field(
            ctx.page, ctx.rect(ann), ann.field_name, ann.field_value,
            font_size=self._field_font_size(ctx, ann)))

    def _draw_checkbox(self, ctx: _PageContext, ann: Annotation) -> None:
        self._field_or_placeholder(ctx, ann, lambda: ctx.writer.add_checkbox(
            ctx.page, ctx.rect(ann), ann.field_name, ann.checked))

    def _draw_radio(self, ctx: _PageContext, ann: Annotation) -> None:
        self._field_or_placeholder(ctx, ann, lambda: ctx.writer.add_radio(
            ctx.page, ctx.rect(ann), ann.field_name, ann.checked, ann.radio_value))

    def _draw_dropdown(self, ctx: _PageContext, ann: Annotation) -> None:
        self._field_or_placeholder(ctx, ann, lambda: ctx.writer.add_combobox(
            ctx.page, ctx.rect(ann), ann.field_name, ann.options, ann.selected_option,
            font_size=self._field_font_size(ctx, ann)))

    def _draw_signature_field(self, ctx: _PageContext, ann: Annotation) -> None:
        # Exported as a text field so the signing flow can find it by name
        self._field_or_placeholder(ctx, ann, lambda: ctx.writer.add_text_field(
            ctx.page, ctx.rect(ann), ann.field_name, ""))

    def _draw_placeholder(self, ctx: _PageContext, ann: Annotation) -> None:
        """Static drawing of a form field that could not become a real widget."""
        x0, y0, x1, y1 = rect = ctx.rect(ann)
        writer, page = ctx.writer, ctx.page
        border = FIELD_BORDER

        if ann.kind == AnnotationKind.RADIO:
            writer.draw_oval(page, rect, fill=(1, 1, 1), color=border, width=1)
            if ann.checked:
                inset = (x1 - x0) * 0.3
                writer.draw_oval(page, (x0 + inset, y0 + inset, x1 - inset, y1 - inset),
                                 fill=border)
            return

        writer.draw_rect(page, rect, fill=(1, 1, 1), color=border, width=1)
        if ann.kind == AnnotationKind.CHECKBOX:
            if ann.checked:
                w, h = x1 - x0, y1 - y0
                pad = w * 0.2
                mid = (x0 + w * 0.4, y1 - pad)
                writer.draw_line(page, (x0 + pad, y0 + h * 0.5), mid, color=border, width=2)
                writer.draw_line(page, mid, (x1 - pad, y0 + pad), color=border, width=2)
            return

        if ann.kind in (AnnotationKind.TEXTFIELD, AnnotationKind.DATE):
            text, color = ann.field_value, (0, 0, 0)
        elif ann.kind == AnnotationKind.DROPDOWN:
            text, color = ann.selected_option, (0, 0, 0)
        else:
            text, color = ann.signature_label or "Signature", PLACEHOLDER_TEXT
        if text:
            fontsize = min(self._field_font_size(ctx, ann) or 12.0, (y1 - y0) * 0.7)
            top = (y0 + y1) / 2 - fontsize * 0.6
            writer.draw_textbox(page, (x0 + 3, top, x1 - 3, y1), text,
                                fontname='helv', fontsize=fontsize, color=color)


_HANDLERS: Dict[AnnotationKind, Callable[[PDFExporter, _PageContext, Annotation], None]] = {
    AnnotationKind.TEXT: PDFExporter._draw_text,
    AnnotationKind.WHITEOUT: PDFExporter._draw_whiteout,
    AnnotationKind.HIGHLIGHT: PDFExporter._draw_highlight,
    AnnotationKind.UNDERLINE: PDFExporter._draw_line,
    AnnotationKind.STRIKE: PDFExporter._draw_line,
    AnnotationKind.RECT: PDFExporter._draw_rect,
    AnnotationKind.ELLIPSE: PDFExporter._draw_ellipse,
    AnnotationKind.ARROW: PDFExporter._draw_arrow,
    AnnotationKind.NOTE: PDFExporter._draw_note,
    AnnotationKind.STAMP: PDFExporter._draw_stamp,
    AnnotationKind.IMAGE: PDFExporter._draw_image,
    AnnotationKind.FREEHAND: PDFExporter._draw_freehand,
    AnnotationKind.TEXTFIELD: PDFExporter._draw_textfield,
    AnnotationKind.CHECKBOX: PDFExporter._draw_checkbox,
    AnnotationKind.RADIO: PDFExporter._draw_radio,
    AnnotationKind.DROPDOWN: PDFExporter._draw_dropdown,
    AnnotationKind.DATE: PDFExporter._draw_textfield,
    AnnotationKind.SIGNATURE: PDFExporter._draw_signature,
    AnnotationKind.SIGNATURE_FIELD: PDFExporter._draw_signature_field,
}

_missing = set(AnnotationKind) - set(_HANDLERS)
if _missing:
    raise RuntimeError(f"No export handler for: {sorted(k.value for k in _missing)}")
