"""
Edit/fill interaction modes and the interactivity policy behind them.
"""
from enum import Enum
from typing import NamedTuple

from PyQt5.QtCore import QObject, pyqtSignal

from .models import FILLABLE_KINDS, AnnotationKind
from .tools import Tool


class InteractionMode(Enum):
    EDIT = "edit"
    FILL = "fill"


class Interactivity(NamedTuple):
    selectable: bool
    movable: bool
    resizable: bool


INERT = Interactivity(False, False, False)


def interactivity_for(kind: AnnotationKind, locked: bool,
                      mode: InteractionMode, tool: Tool) -> Interactivity:
    """
    Decide how an object reacts to the pointer.

    Args:
        kind: Annotation kind
        locked: Whether the object is locked
        mode: Current interaction mode
        tool: Active tool

    Returns:
        Interactivity flags for the object
    """
    if mode == InteractionMode.FILL:
        if kind in FILLABLE_KINDS:
            return Interactivity(True, False, False)
        return INERT

    if tool != Tool.SELECT:
        return INERT
    if locked:
        return Interactivity(True, False, False)
    return Interactivity(True, True, True)


class ModeController(QObject):
    """Holds the current interaction mode and announces changes."""

    mode_changed = pyqtSignal(object)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._mode = InteractionMode.EDIT

    @property
    def mode(self) -> InteractionMode:
        return self._mode

    @property
    def is_fill_mode(self) -> bool:
        return self._mode == InteractionMode.FILL

    def set_mode(self, mode) -> None:
        """Switch mode; accepts an InteractionMode or its string value."""
        mode = InteractionMode(mode)
        if mode == self._mode:
            return
        self._mode = mode
        self.mode_changed.emit(mode)

    def toggle(self) -> InteractionMode:
        self.set_mode(InteractionMode.EDIT if self.is_fill_mode else InteractionMode.FILL)
        return self._mode
