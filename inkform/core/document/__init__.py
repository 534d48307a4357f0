"""
Source documents, the output writer and document-level metadata.
"""
from .form_fields import FieldDescriptor, load_form_fields
from .registry import MAIN_DOCUMENT_ID, Document, DocumentRegistry
from .signing_metadata import (
    SigningMetadata,
    Signer,
    build_signing_keywords,
    has_signing_metadata,
    parse_signing_metadata,
)
from .writer import DocumentWriter

__all__ = [
    'Document',
    'DocumentRegistry',
    'MAIN_DOCUMENT_ID',
    'DocumentWriter',
    'FieldDescriptor',
    'load_form_fields',
    'SigningMetadata',
    'Signer',
    'build_signing_keywords',
    'parse_signing_metadata',
    'has_signing_metadata',
]
