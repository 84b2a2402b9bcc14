"""Line editor module for shellgate.

Public API:
    LineEditor -- Buffer, cursor and minimal-repaint editing
    History -- Bounded per-session command history
"""

from shellgate.editor.line_editor import History, LineEditor

__all__ = ["History", "LineEditor"]
