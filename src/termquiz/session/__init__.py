"""
Session Package

Mutable answer/progress state and its crash-safe snapshot.
"""

from .attachments import validate_attachment
from .persistence import SnapshotStore, state_dir_for
from .state import QuestionStatus, Session, StatusCounts

__all__ = [
    "QuestionStatus",
    "Session",
    "StatusCounts",
    "SnapshotStore",
    "state_dir_for",
    "validate_attachment",
]
