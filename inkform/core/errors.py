"""
Exceptions raised by the editor core.
"""


class InkformError(Exception):
    """Base class for all editor errors."""


class DocumentLoadError(InkformError):
    """A source document could not be opened."""


class DuplicateFieldNameError(InkformError, ValueError):
    """A field name is already used by another field in the session."""

    def __init__(self, field_name: str):
        super().__init__(f"Field name already in use: {field_name!r}")
        self.field_name = field_name


class InvalidFieldValueError(InkformError, ValueError):
    """A value is not acceptable for the target field."""


class FieldCreationError(InkformError):
    """The writer refused to create an interactive field."""


class UnsupportedImageError(InkformError):
    """Image bytes are neither PNG nor JPEG."""


class ExportError(InkformError):
    """The export pass could not produce a document."""
