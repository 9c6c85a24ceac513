"""
Module: answers

Purpose:
    Provides the Answer dataclass - a tagged union whose tag is the same
    QuestionType enum the parser assigns to questions. Exactly one payload
    (selected labels, text, or files) is populated, and the tag decides
    which one.

Key Functions:
    - Answer.single(label) / Answer.multi(labels)
    - Answer.short(text) / Answer.long(text)
    - Answer.file(paths)
    - Answer.to_dict() / Answer.from_dict(): Snapshot serialization

Dependencies:
    - dataclasses (std)
    - .questions.QuestionType

Used By:
    - session.state
    - session.persistence
    - submission.document, submission.response
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, FrozenSet, Iterable, Optional, Tuple

from .questions import QuestionType


@dataclass(frozen=True)
class Answer:
    """
    A candidate's answer to one question.

    Always build through the factory methods; the constructor validates that
    only the payload matching ``type`` is populated.

    Attributes:
        type: Tag, identical to the question's QuestionType
        selected: Chosen labels (single/multi only)
        text: Typed text (short/long only)
        files: Attached file paths in attach order (file only)

    Invariants:
        - single: at most one label selected
        - payloads other than the tagged one are empty/None

    Example:
        >>> a = Answer.multi({"b", "a"})
        >>> a.sorted_labels
        ('a', 'b')
        >>> a.is_empty
        False
    """

    type: QuestionType
    selected: FrozenSet[str] = frozenset()
    text: Optional[str] = None
    files: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate that the payload matches the tag."""
        kind = self.type
        if kind.is_choice:
            if self.text is not None or self.files:
                raise ValueError(f"{kind.value} answer may only carry selected labels")
            if kind is QuestionType.SINGLE and len(self.selected) > 1:
                raise ValueError(f"single answer has {len(self.selected)} labels selected")
        elif kind.is_text:
            if self.selected or self.files:
                raise ValueError(f"{kind.value} answer may only carry text")
            if self.text is None:
                raise ValueError(f"{kind.value} answer requires text")
        elif kind is QuestionType.FILE:
            if self.selected or self.text is not None:
                raise ValueError("file answer may only carry files")
        else:
            raise ValueError(f"Unknown answer type: {kind!r}")

    # ─────────────────────────────────────────────────────────────────────────
    # Factory Methods
    # ─────────────────────────────────────────────────────────────────────────

    @classmethod
    def single(cls, label: str) -> Answer:
        return cls(type=QuestionType.SINGLE, selected=frozenset({label}))

    @classmethod
    def multi(cls, labels: Iterable[str]) -> Answer:
        return cls(type=QuestionType.MULTI, selected=frozenset(labels))

    @classmethod
    def short(cls, text: str) -> Answer:
        return cls(type=QuestionType.SHORT, text=text)

    @classmethod
    def long(cls, text: str) -> Answer:
        return cls(type=QuestionType.LONG, text=text)

    @classmethod
    def file(cls, paths: Iterable[str]) -> Answer:
        return cls(type=QuestionType.FILE, files=tuple(paths))

    @classmethod
    def text_for(cls, kind: QuestionType, text: str) -> Answer:
        """Build a short or long answer depending on ``kind``."""
        if not kind.is_text:
            raise ValueError(f"{kind.value} questions do not take text answers")
        return cls(type=kind, text=text)

    # ─────────────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def is_empty(self) -> bool:
        """
        True when the answer carries nothing worth keeping.

        Whitespace-only text counts as empty.
        """
        if self.type.is_choice:
            return not self.selected
        if self.type.is_text:
            return not (self.text or "").strip()
        if self.type is QuestionType.FILE:
            return not self.files
        raise ValueError(f"Unknown answer type: {self.type!r}")

    @property
    def sorted_labels(self) -> Tuple[str, ...]:
        return tuple(sorted(self.selected))

    # ─────────────────────────────────────────────────────────────────────────
    # Serialization
    # ─────────────────────────────────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize to the snapshot's answers-table entry.

        Only the tagged payload is written.
        """
        data: dict[str, Any] = {"type": self.type.value}
        if self.type.is_choice:
            data["selected"] = list(self.sorted_labels)
        elif self.type.is_text:
            data["text"] = self.text
        elif self.type is QuestionType.FILE:
            data["files"] = list(self.files)
        else:
            raise ValueError(f"Unknown answer type: {self.type!r}")
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Answer:
        """
        Deserialize an answers-table entry.

        Raises:
            ValueError: If the tag is unknown or the payload does not match it
        """
        kind = QuestionType(data["type"])
        if kind.is_choice:
            return cls(type=kind, selected=frozenset(data.get("selected", [])))
        if kind.is_text:
            return cls(type=kind, text=data.get("text", ""))
        if kind is QuestionType.FILE:
            return cls(type=kind, files=tuple(data.get("files", [])))
        raise ValueError(f"Unknown answer type: {kind!r}")
