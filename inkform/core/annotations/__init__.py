"""
Annotation surface: per-page object stores, tools, history and modes.
"""
from .canvas import AnnotationCanvas
from .manager import AnnotationManager
from .mode import InteractionMode, Interactivity, ModeController, interactivity_for
from .models import (
    FIELD_KINDS,
    FILLABLE_KINDS,
    Annotation,
    AnnotationKind,
    SignatureMeta,
)
from .tools import Tool
from .undo_redo import PageSnapshot, UndoRedoStack

__all__ = [
    'Annotation',
    'AnnotationKind',
    'SignatureMeta',
    'FIELD_KINDS',
    'FILLABLE_KINDS',
    'AnnotationCanvas',
    'AnnotationManager',
    'InteractionMode',
    'Interactivity',
    'ModeController',
    'interactivity_for',
    'Tool',
    'PageSnapshot',
    'UndoRedoStack',
]
