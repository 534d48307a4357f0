"""
PDF export: the compositor and its worker thread.
"""
from .export_worker import ExportWorker
from .pdf_exporter import AuditEntry, PDFExporter, font_for

__all__ = [
    'PDFExporter',
    'AuditEntry',
    'ExportWorker',
    'font_for',
]
