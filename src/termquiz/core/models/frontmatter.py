"""
Module: frontmatter

Purpose:
    Provides the Frontmatter dataclass - the quiz's open/close window and
    optional consent gate - plus AckRecord, the persisted proof that the
    candidate accepted that gate.

Key Classes:
    - AckConfig: Consent gate configuration from the document
    - Frontmatter: Timing window and consent requirement (immutable)
    - AckRecord: Who accepted the gate, when, and the hash of the text

Dependencies:
    - dataclasses (std)
    - datetime (std)

Used By:
    - core.models.questions.Quiz
    - document.frontmatter
    - session.state, session.persistence
    - submission.document
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class AckConfig:
    """
    Consent gate shown before the quiz starts.

    Attributes:
        required: Whether the candidate must accept before answering
        text: Statement the candidate agrees to (optional)
    """

    required: bool = False
    text: Optional[str] = None


@dataclass(frozen=True)
class Frontmatter:
    """
    Metadata block preceding quiz content (immutable).

    Attributes:
        start: When the quiz opens (timezone-aware)
        end: When the quiz closes (timezone-aware)
        title: Optional title; wins over the document's level-1 heading
        acknowledgment: Optional consent gate

    Invariants:
        - start and end carry a UTC offset
        - end is after start
    """

    start: datetime
    end: datetime
    title: Optional[str] = None
    acknowledgment: Optional[AckConfig] = None

    def __post_init__(self) -> None:
        """Validate the window on construction."""
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("start and end must include a UTC offset")
        if self.end <= self.start:
            raise ValueError(
                f"end ({self.end.isoformat()}) must be after start ({self.start.isoformat()})"
            )

    @property
    def requires_acknowledgment(self) -> bool:
        return self.acknowledgment is not None and self.acknowledgment.required

    @property
    def duration_seconds(self) -> int:
        return int((self.end - self.start).total_seconds())


@dataclass(frozen=True)
class AckRecord:
    """
    Record of an accepted consent gate.

    Attributes:
        name: Name the candidate typed
        agreed_at: When they accepted
        text_hash: "sha256:<hex>" of the acknowledgment text shown
    """

    name: str
    agreed_at: datetime
    text_hash: str

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "agreed_at": self.agreed_at.isoformat(),
            "text_hash": self.text_hash,
        }

    @classmethod
    def from_dict(cls, data: dict) -> AckRecord:
        return cls(
            name=data["name"],
            agreed_at=datetime.fromisoformat(data["agreed_at"]),
            text_hash=data["text_hash"],
        )
