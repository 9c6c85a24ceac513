"""
Module: questions

Purpose:
    Provides the immutable quiz model produced by the document parser:
    Quiz, Question, Choice, FileConstraints and BodyBlock. QuestionType is
    the closed set of question kinds and is shared with Answer so the two
    can never drift apart.

Key Classes:
    - QuestionType: single | multi | short | long | file
    - Question: One numbered question with its body, choices and hints
    - Quiz: Parsed document plus its content hash

Dependencies:
    - dataclasses (std)
    - enum (std)
    - .frontmatter.Frontmatter

Used By:
    - document.parser
    - core.models.answers
    - session.state, session.persistence
    - submission.document
"""

from __future__ import annotations

import string
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Dict, FrozenSet, Optional, Tuple

from .frontmatter import Frontmatter


CHOICE_LABELS = string.ascii_lowercase


class QuestionType(str, Enum):
    """Closed set of question kinds (also the Answer tag)."""

    SINGLE = "single"
    MULTI = "multi"
    SHORT = "short"
    LONG = "long"
    FILE = "file"

    @property
    def is_choice(self) -> bool:
        return self in (QuestionType.SINGLE, QuestionType.MULTI)

    @property
    def is_text(self) -> bool:
        return self in (QuestionType.SHORT, QuestionType.LONG)


class BlockKind(str, Enum):
    """Kinds of body content kept for faithful rendering."""

    TEXT = "text"
    CODE = "code"
    LIST_ITEM = "list_item"


@dataclass(frozen=True)
class BodyBlock:
    """
    One block of question body content.

    Attributes:
        kind: text, code or list_item
        text: Block content; inline code keeps backticks, emphasis keeps markers
        language: Info string of a fenced code block, if any
    """

    kind: BlockKind
    text: str
    language: Optional[str] = None


@dataclass(frozen=True)
class Choice:
    """
    One checkbox option of a choice question.

    Attributes:
        label: Lowercase letter assigned in encounter order (a, b, c, ...)
        text: Option text
        marked: Whether the source had the box ticked ("[x]")
    """

    label: str
    text: str
    marked: bool = False


@dataclass(frozen=True)
class FileConstraints:
    """
    Limits on a file-upload answer. Unset fields mean "no limit".

    Attributes:
        max_files: Maximum number of attached files
        max_size_bytes: Maximum size of each file in bytes
        accepted_extensions: Allowed extensions such as ".rs" (empty = any)
    """

    max_files: Optional[int] = None
    max_size_bytes: Optional[int] = None
    accepted_extensions: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class Question:
    """
    Single quiz question (immutable).

    Attributes:
        number: Number from the "## N. Title" heading (unique, positive).
            Answer keys and navigation use this, never the list position.
        title: Heading text after the number
        type: Question kind
        body: Ordered content blocks
        choices: Options for single/multi questions, empty otherwise
        file_constraints: Limits for file questions, None otherwise
        hints: Ordered hint texts revealed on request

    Invariants:
        - number > 0
        - choices non-empty iff type is single or multi
        - file_constraints set iff type is file
        - choice labels unique
    """

    number: int
    title: str
    type: QuestionType
    body: Tuple[BodyBlock, ...] = ()
    choices: Tuple[Choice, ...] = ()
    file_constraints: Optional[FileConstraints] = None
    hints: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate question on construction."""
        if self.number <= 0:
            raise ValueError(f"question number must be positive: {self.number}")
        if self.type.is_choice and not self.choices:
            raise ValueError(f"question {self.number}: {self.type.value} question needs choices")
        if not self.type.is_choice and self.choices:
            raise ValueError(f"question {self.number}: {self.type.value} question cannot have choices")
        if (self.type is QuestionType.FILE) != (self.file_constraints is not None):
            raise ValueError(f"question {self.number}: file_constraints only valid for file questions")
        labels = [c.label for c in self.choices]
        if len(set(labels)) != len(labels):
            raise ValueError(f"question {self.number}: duplicate choice labels {labels}")

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(c.label for c in self.choices)

    def choice_label(self, index: int) -> str:
        """
        Label of the choice at a 0-based index.

        Raises:
            IndexError: If the question has no choice at that index
        """
        if not 0 <= index < len(self.choices):
            raise IndexError(
                f"question {self.number} has {len(self.choices)} choices, no index {index}"
            )
        return self.choices[index].label


@dataclass(frozen=True)
class Quiz:
    """
    Parsed quiz document (immutable).

    Attributes:
        frontmatter: Timing window and consent gate
        title: Frontmatter title, else first level-1 heading, else source name
        preamble: Paragraphs before the first question
        questions: Questions in document order
        source_name: File name of the document
        source_hash: "sha256:<hex>" of the document bytes; resumption identity
    """

    frontmatter: Frontmatter
    title: str
    preamble: Tuple[str, ...]
    questions: Tuple[Question, ...]
    source_name: str
    source_hash: str
    _by_number: Dict[int, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        index = {}
        for i, question in enumerate(self.questions):
            if question.number in index:
                raise ValueError(f"duplicate question number: {question.number}")
            index[question.number] = i
        object.__setattr__(self, "_by_number", index)

    @cached_property
    def numbers(self) -> Tuple[int, ...]:
        return tuple(q.number for q in self.questions)

    def question(self, number: int) -> Question:
        """
        Look up a question by its heading number.

        Raises:
            KeyError: If no question has that number
        """
        return self.questions[self.index_of(number)]

    def index_of(self, number: int) -> int:
        try:
            return self._by_number[number]
        except KeyError:
            raise KeyError(f"no question numbered {number}") from None

    def __contains__(self, number: object) -> bool:
        return number in self._by_number

    def __len__(self) -> int:
        return len(self.questions)
