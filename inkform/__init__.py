"""
Inkform: page-sequence, annotation and form-field editing core for PDF documents.
"""

__version__ = "0.1.0"
