"""
Application controllers tying the core components together.
"""
from .document_controller import DocumentController

__all__ = [
    'DocumentController',
]
