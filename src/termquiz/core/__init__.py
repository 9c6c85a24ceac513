"""
termquiz Core Package

Shared data models, the error taxonomy and snapshot schema validation.
Nothing in this package performs I/O except the schema loader.
"""

from .errors import (
    AttachmentRejected,
    ConflictError,
    DocumentError,
    ResourceError,
    StateCorruption,
    TermquizError,
    TransientPublishError,
)
from .models import Answer, Question, QuestionType, Quiz

__all__ = [
    "AttachmentRejected",
    "ConflictError",
    "DocumentError",
    "ResourceError",
    "StateCorruption",
    "TermquizError",
    "TransientPublishError",
    "Answer",
    "Question",
    "QuestionType",
    "Quiz",
]
