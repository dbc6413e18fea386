"""
Drag gesture state machine for moving candidates between stage columns.
"""

from .resolver import DragDropResolver, DragNotice, DragOutcome, DragState, DropTarget

__all__ = ["DragDropResolver", "DragNotice", "DragOutcome", "DragState", "DropTarget"]
