"""
Core Models Package

Immutable data models shared by the parser, session, persistence and
submission layers.

All models in this package are frozen dataclasses. The only mutable
aggregate in termquiz is ``session.state.Session``, which holds references
to these models but never modifies them.
"""

from .frontmatter import AckConfig, AckRecord, Frontmatter
from .questions import (
    BlockKind,
    BodyBlock,
    Choice,
    FileConstraints,
    Question,
    QuestionType,
    Quiz,
)
from .answers import Answer

__all__ = [
    "AckConfig",
    "AckRecord",
    "Frontmatter",
    "BlockKind",
    "BodyBlock",
    "Choice",
    "FileConstraints",
    "Question",
    "QuestionType",
    "Quiz",
    "Answer",
]
