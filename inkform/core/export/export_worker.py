"""
Background thread that runs an export without freezing the UI.
"""
import logging
from typing import Collection, Dict, List, Mapping, Optional, Sequence

from PyQt5.QtCore import QThread, pyqtSignal

from inkform.config import EditorConfig
from inkform.core.annotations.models import Annotation
from inkform.core.document.registry import DocumentRegistry
from inkform.core.document.signing_metadata import SigningMetadata
from inkform.core.errors import ExportError
from inkform.core.page.models import ViewPage

from .pdf_exporter import PDFExporter

logger = logging.getLogger(__name__)


class ExportWorker(QThread):
    """
    Worker thread for exporting view pages to PDF bytes.

    Everything the thread reads is captured before it starts: documents are
    immutable and annotations must be copies.
    """

    # Signals
    succeeded = pyqtSignal(bytes)
    failed = pyqtSignal(str)
    progress = pyqtSignal(str)  # status message
    page_progress = pyqtSignal(int, int)  # current, total pages

    def __init__(self, registry: DocumentRegistry, view_pages: Sequence[ViewPage],
                 annotations: Dict[str, List[Annotation]], scale: float,
                 config: Optional[EditorConfig] = None,
                 signing: Optional[SigningMetadata] = None,
                 imported_fields: Optional[Mapping[str, Collection[str]]] = None,
                 parent=None):
        super().__init__(parent)
        self.registry = registry
        self.view_pages = list(view_pages)
        self.annotations = annotations
        self.scale = scale
        self.signing = signing
        self.imported_fields = {doc_id: frozenset(names)
                                for doc_id, names in (imported_fields or {}).items()}
        self.result: Optional[bytes] = None
        self.error: Optional[str] = None
        self.exporter = PDFExporter(config)

    def run(self):
        """Execute the export in a background thread."""
        self.exporter.progress_signal.connect(self._on_page_progress)
        self.progress.emit("Exporting pages...")
        try:
            self.result = self.exporter.export(
                self.registry, self.view_pages, self.annotations, self.scale, self.signing,
                self.imported_fields)
        except ExportError as e:
            logger.exception("Export failed")
            self.error = str(e)
            self.failed.emit(self.error)
            return
        except Exception as e:
            logger.exception("Unexpected error during export")
            self.error = f"Error during export: {e}"
            self.failed.emit(self.error)
            return
        self.succeeded.emit(self.result)

    def _on_page_progress(self, current, total):
        """Handle page-level progress updates."""
        self.page_progress.emit(current, total)
