"""
Registry of the source documents loaded in a session.
"""
import hashlib
import logging
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import fitz  # PyMuPDF

from inkform.core.errors import DocumentLoadError

logger = logging.getLogger(__name__)

MAIN_DOCUMENT_ID = "main"


@dataclass(frozen=True)
class Document:
    """An immutable source document held as raw bytes."""
    document_id: str
    data: bytes
    page_count: int
    display_name: str = ""
    sha256: str = ""

    def open(self) -> fitz.Document:
        """Open a fresh PyMuPDF handle on the document bytes."""
        return fitz.open(stream=self.data, filetype="pdf")

    def page_size(self, page_number: int) -> Tuple[float, float]:
        """Unrotated (width, height) in points of a 1-based page."""
        with self.open() as doc:
            rect = doc[page_number - 1].cropbox
            return rect.width, rect.height


def _inspect(data: bytes, display_name: str) -> int:
    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            if doc.needs_pass:
                raise DocumentLoadError(f"{display_name or 'Document'} is password protected")
            page_count = doc.page_count
    except (RuntimeError, ValueError) as e:
        raise DocumentLoadError(f"Cannot open {display_name or 'document'}: {e}") from e

    if page_count < 1:
        raise DocumentLoadError(f"{display_name or 'Document'} has no pages")
    return page_count


class DocumentRegistry:
    """Holds the main document and every document appended to it."""

    def __init__(self):
        self._documents: Dict[str, Document] = {}

    def __contains__(self, document_id: str) -> bool:
        return document_id in self._documents

    def __len__(self) -> int:
        return len(self._documents)

    def load_main(self, data: bytes, display_name: str = "") -> Document:
        """
        Replace the whole registry with a new main document.

        Args:
            data: PDF bytes
            display_name: File name shown to the user

        Returns:
            The registered document

        Raises:
            DocumentLoadError: if the bytes cannot be opened as a PDF
        """
        document = self._build(MAIN_DOCUMENT_ID, data, display_name)
        self._documents = {MAIN_DOCUMENT_ID: document}
        logger.info("Loaded %s (%d pages)", display_name or "document", document.page_count)
        return document

    def add(self, data: bytes, display_name: str = "") -> Document:
        """
        Register an appended document under a fresh id.

        Raises:
            DocumentLoadError: if the bytes cannot be opened as a PDF
        """
        document_id = f"doc-{uuid.uuid4().hex[:8]}"
        while document_id in self._documents:
            document_id = f"doc-{uuid.uuid4().hex[:8]}"
        document = self._build(document_id, data, display_name)
        self._documents[document_id] = document
        logger.info("Appended %s as %s (%d pages)",
                    display_name or "document", document_id, document.page_count)
        return document

    def _build(self, document_id: str, data: bytes, display_name: str) -> Document:
        data = bytes(data)
        page_count = _inspect(data, display_name)
        return Document(
            document_id=document_id,
            data=data,
            page_count=page_count,
            display_name=display_name,
            sha256=hashlib.sha256(data).hexdigest(),
        )

    def get(self, document_id: str) -> Document:
        return self._documents[document_id]

    @property
    def main(self) -> Optional[Document]:
        return self._documents.get(MAIN_DOCUMENT_ID)

    def documents(self) -> List[Document]:
        return list(self._documents.values())

    def clear(self) -> None:
        self._documents.clear()
