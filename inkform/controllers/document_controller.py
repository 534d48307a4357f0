"""
Controller that owns the loaded documents and keeps the page sequence,
annotation canvases, rendering and export in step.
"""
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from PyQt5.QtCore import QObject, pyqtSignal

from inkform.config import EditorConfig
from inkform.core.annotations import AnnotationManager, ModeController
from inkform.core.document import (
    Document,
    DocumentRegistry,
    SigningMetadata,
    load_form_fields,
    parse_signing_metadata,
)
from inkform.core.errors import DocumentLoadError, ExportError
from inkform.core.export import ExportWorker, PDFExporter
from inkform.core.page import (
    PageRenderer,
    RenderedPage,
    ViewPage,
    ViewSequence,
    parse_page_ranges,
)

logger = logging.getLogger(__name__)

Source = Union[bytes, bytearray, str, os.PathLike]


def _read_source(source: Source) -> Tuple[bytes, str]:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source), ""
    path = Path(source)
    try:
        return path.read_bytes(), path.name
    except OSError as e:
        raise DocumentLoadError(f"Cannot read {path}: {e}") from e


class DocumentController(QObject):
    """Coordinates document loading, page operations, zoom and export."""

    # Signals
    document_loaded = pyqtSignal(str)  # display name
    pages_changed = pyqtSignal()
    zoom_changed = pyqtSignal(float)
    export_progress = pyqtSignal(int, int)  # current, total pages
    export_succeeded = pyqtSignal(bytes)
    export_failed = pyqtSignal(str)

    def __init__(self, config: Optional[EditorConfig] = None, parent=None):
        super().__init__(parent)
        self.config = config or EditorConfig()

        self.registry = DocumentRegistry()
        self.sequence = ViewSequence(self)
        self.mode_controller = ModeController(self)
        self.annotations = AnnotationManager(self.config, self.mode_controller, self)
        self.renderer = PageRenderer(self.registry)
        self.exporter = PDFExporter(self.config)

        self.scale = 1.0
        self.signing: Optional[SigningMetadata] = None
        self.export_worker: Optional[ExportWorker] = None
        # Document id to the names of its own widgets that were imported as objects
        self._imported_fields: Dict[str, Set[str]] = {}

        self.sequence.sequence_changed.connect(self.pages_changed)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @property
    def is_loaded(self) -> bool:
        return self.registry.main is not None

    def load(self, source: Source, display_name: str = "",
             import_fields: bool = True) -> Document:
        """
        Replace everything with a new main document.

        Args:
            source: PDF bytes or a file path
            display_name: Name shown to the user; defaults to the file name
            import_fields: Turn the document's own form fields into editable objects

        Returns:
            The loaded document

        Raises:
            DocumentLoadError: if the source cannot be read or opened
        """
        data, file_name = _read_source(source)
        display_name = display_name or file_name

        # The registry is left untouched when the bytes are rejected
        document = self.registry.load_main(data, display_name)
        self.annotations.clear_all()
        self.renderer.close()
        self._imported_fields.clear()
        self.annotations.current_scale = self.scale

        pages = self.sequence.load(document)
        self._create_canvases(pages)
        if import_fields:
            self._import_fields(document, pages)

        with document.open() as doc:
            self.signing = parse_signing_metadata((doc.metadata or {}).get('keywords'))

        self.document_loaded.emit(display_name)
        return document

    def append(self, source: Source, display_name: str = "",
               import_fields: bool = True) -> List[ViewPage]:
        """
        Add every page of another document to the end of the sequence.

        Returns:
            The new view pages; pages that cannot be rasterized are left out

        Raises:
            DocumentLoadError: if the source cannot be read or opened, or no
                main document is loaded yet
        """
        if not self.is_loaded:
            raise DocumentLoadError("Load a document before appending pages")
        data, file_name = _read_source(source)
        document = self.registry.add(data, display_name or file_name)
        pages = self.sequence.append(document)
        ready = self._create_canvases(pages)
        if import_fields:
            self._import_fields(document, pages)
        return ready

    def close(self) -> None:
        """Forget every document and page."""
        self.annotations.clear_all()
        self.sequence.clear()
        self.renderer.close()
        self.registry.clear()
        self._imported_fields.clear()
        self.signing = None

    def _create_canvases(self, pages: Sequence[ViewPage]) -> List[ViewPage]:
        """
        Create the canvas of every new page.

        A page that cannot be rasterized is logged and taken out of the
        sequence again, so every page in the sequence has a canvas.

        Returns:
            The pages that got a canvas
        """
        ready: List[ViewPage] = []
        failed: List[str] = []
        for view_page in pages:
            try:
                width, height = self.renderer.page_size(*view_page.source)
            except (RuntimeError, ValueError, IndexError):
                logger.exception("Cannot rasterize page %d of %s, skipping it",
                                 view_page.source_page_number, view_page.document_id)
                failed.append(view_page.view_page_id)
                continue
            self.annotations.create_canvas(
                view_page.view_page_id, width * self.scale, height * self.scale)
            ready.append(view_page)
        if failed:
            self.sequence.delete(failed)
        return ready

    def _import_fields(self, document: Document, pages: Sequence[ViewPage]) -> None:
        descriptors = load_form_fields(document.data)
        if not descriptors:
            return
        imported = self.annotations.import_form_fields(
            descriptors, [p.view_page_id for p in pages], self.scale)
        if imported:
            self._imported_fields[document.document_id] = {d.name for d in imported if d.name}
        logger.info("Imported %d form field(s) from %s", len(imported), document.document_id)

    # ------------------------------------------------------------------
    # Page operations
    # ------------------------------------------------------------------

    @property
    def pages(self) -> List[ViewPage]:
        return self.sequence.pages

    def render_page(self, view_page_id: str) -> Optional[RenderedPage]:
        """
        Render a view page at the current scale with its view rotation.

        Returns:
            The rendered page, or None for an unknown id or a page that
            cannot be rasterized
        """
        view_page = self.sequence.get(view_page_id)
        if view_page is None:
            return None
        try:
            return self.renderer.render(view_page.document_id, view_page.source_page_number,
                                        self.scale, view_page.rotation)
        except (RuntimeError, ValueError, IndexError):
            logger.exception("Cannot rasterize view page %s", view_page_id)
            return None

    def reorder(self, from_id: str, to_id: str) -> bool:
        return self.sequence.reorder(from_id, to_id)

    def delete_pages(self, ids: Iterable[str]) -> List[str]:
        """
        Delete pages together with their canvases and histories.

        Returns:
            Ids removed; unknown ids are ignored
        """
        removed = self.sequence.delete(ids)
        for view_page_id in removed:
            self.annotations.remove_page(view_page_id)
        return removed

    def rotate_pages(self, ids: Iterable[str]) -> List[str]:
        return self.sequence.rotate(ids)

    # ------------------------------------------------------------------
    # Zoom
    # ------------------------------------------------------------------

    def set_zoom(self, scale: float) -> float:
        """
        Change the display scale.

        Every canvas and its history is rescaled before this returns, so an
        export started afterwards sees geometry at the new scale.

        Returns:
            The clamped scale actually applied
        """
        scale = self.config.clamp_zoom(scale)
        if scale == self.scale:
            return scale
        self.annotations.rescale(scale)
        self.scale = scale
        self.zoom_changed.emit(scale)
        return scale

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    @property
    def is_exporting(self) -> bool:
        return self.export_worker is not None

    def _export(self, view_pages: Sequence[ViewPage]) -> bytes:
        if not self.is_loaded:
            raise ExportError("No document loaded")
        if not view_pages:
            raise ExportError("Nothing to export")
        return self.exporter.export(
            self.registry, view_pages, self.annotations.get_all_annotations(),
            self.scale, self.signing, self._imported_fields)

    def export_bytes(self) -> bytes:
        """Export the whole sequence with its annotations."""
        return self._export(self.sequence.pages)

    def extract_bytes(self, ids: Iterable[str]) -> bytes:
        """Export only the selected pages, in sequence order."""
        return self._export(self.sequence.extract_subset(ids))

    def split_bytes(self, ranges_text: str) -> List[Tuple[Tuple[int, int], bytes]]:
        """
        Export one document per page range, e.g. ``"1-3, 5, 7-9"``.

        Returns:
            ``((first, last), bytes)`` per range, positions 1-based
        """
        ranges = parse_page_ranges(ranges_text, len(self.sequence))
        if not ranges:
            raise ExportError(f"No valid page ranges in {ranges_text!r}")
        parts = []
        for start, end in ranges:
            for pages in self.sequence.split_by_ranges([(start, end)]):
                parts.append(((start, end), self._export(pages)))
        return parts

    def start_export(self) -> bool:
        """
        Export the whole sequence on a background thread.

        The result arrives through ``export_succeeded`` or ``export_failed``.

        Returns:
            False if an export is already running or nothing is loaded
        """
        if self.is_exporting:
            logger.warning("Export already in progress")
            return False
        if not self.is_loaded or not len(self.sequence):
            return False

        self.export_worker = ExportWorker(
            self.registry,
            self.sequence.extract_subset(self.sequence.ids),
            self.annotations.get_all_annotations(),
            self.scale,
            config=self.config,
            signing=self.signing,
            imported_fields=self._imported_fields,
        )
        self.export_worker.page_progress.connect(self.export_progress)
        self.export_worker.succeeded.connect(self.export_succeeded)
        self.export_worker.failed.connect(self.export_failed)
        self.export_worker.finished.connect(self._on_export_finished)
        self.export_worker.start()
        return True

    def _on_export_finished(self):
        if self.export_worker is not None:
            self.export_worker.deleteLater()
        self.export_worker = None

    # ------------------------------------------------------------------
    # File names
    # ------------------------------------------------------------------

    def _base_name(self) -> str:
        main = self.registry.main
        name = main.display_name if main is not None else ""
        base = Path(name).stem if name else ""
        return base or "document"

    def suggested_export_name(self) -> str:
        return f"{self._base_name()}-edited.pdf"

    def suggested_extract_name(self) -> str:
        return f"{self._base_name()}-extracted.pdf"

    def suggested_split_name(self, part: int, first: int, last: int) -> str:
        return f"{self._base_name()}-part-{part}-{first}-{last}.pdf"
