"""
Module: session.state

Purpose:
    The mutable Session aggregate: answers, flags, done marks, hint counts,
    visited questions, timestamps, acknowledgment and the live text buffer
    of the question being edited.

    Every mutation goes through a method here so the status invariants
    hold after each call:
        - a question is never both done and flagged
        - a question is done only while it has a non-empty answer
          (for the text question being edited, the live buffer counts)
        - emptying an answer, or the live buffer, clears its done mark
        - hints_revealed[n] never exceeds the question's hint count
        - answer tags always match question types

Key Classes:
    - Session: Progress aggregate over one immutable Quiz
    - QuestionStatus: Unread | NotAnswered | Answered | Done | Flagged
    - StatusCounts: Per-status totals for status lines and commit messages

Dependencies:
    - core.models (Quiz, Question, Answer, AckRecord)
    - session.attachments

Used By:
    - session.persistence
    - submission.document, submission.pipeline
    - app.controller
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Set

from termquiz.core.models.answers import Answer
from termquiz.core.models.frontmatter import AckRecord
from termquiz.core.models.questions import Question, QuestionType, Quiz
from termquiz.core.utils.hashing import hash_text

from .attachments import validate_attachment

logger = logging.getLogger(__name__)


class QuestionStatus(str, Enum):
    """Display status, resolved by precedence Done > Flagged > Answered > NotAnswered > Unread."""

    UNREAD = "unread"
    NOT_ANSWERED = "not_answered"
    ANSWERED = "answered"
    DONE = "done"
    FLAGGED = "flagged"


@dataclass(frozen=True)
class StatusCounts:
    """Number of questions in each status."""

    total: int
    done: int = 0
    answered: int = 0
    flagged: int = 0
    not_answered: int = 0
    unread: int = 0

    @property
    def unanswered(self) -> int:
        """Questions with nothing recorded, visited or not."""
        return self.not_answered + self.unread


class Session:
    """
    In-memory progress over one quiz.

    Questions are addressed by their heading number everywhere except
    ``current_index`` and ``navigate``, which use the list position.

    Attributes:
        quiz: The immutable quiz this session answers
        current_index: Position of the question on screen
        answers: Committed answers keyed by question number
        flags: Numbers flagged for review
        done_marks: Numbers the candidate marked done
        hints_revealed: Hints shown so far, keyed by question number
        visited: Numbers the candidate has opened
        started_at: When the candidate began (None until ``begin``)
        submitted_at: When the answers were frozen for submission
        acknowledgment: Accepted consent gate, if any
        text_buffer: Live, uncommitted text of the current short/long question

    Example:
        >>> session = Session(quiz)
        >>> session.begin(utc_now())
        >>> session.toggle_single(1, 2)
        >>> session.toggle_done(1)
        True
        >>> session.status(1)
        <QuestionStatus.DONE: 'done'>
    """

    def __init__(self, quiz: Quiz):
        self.quiz = quiz
        self.current_index = 0
        self.answers: Dict[int, Answer] = {}
        self.flags: Set[int] = set()
        self.done_marks: Set[int] = set()
        self.hints_revealed: Dict[int, int] = {}
        self.visited: Set[int] = set()
        self.started_at: Optional[datetime] = None
        self.submitted_at: Optional[datetime] = None
        self.acknowledgment: Optional[AckRecord] = None
        self.text_buffer = ""

    # ─────────────────────────────────────────────────────────────────────────
    # Lookups
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def current_question(self) -> Optional[Question]:
        if not self.quiz.questions:
            return None
        return self.quiz.questions[self.current_index]

    @property
    def current_number(self) -> Optional[int]:
        question = self.current_question
        return question.number if question is not None else None

    def _is_live_text(self, number: int) -> bool:
        """True if ``number`` is the current question and takes typed text."""
        question = self.current_question
        return question is not None and question.number == number and question.type.is_text

    def answer_for(self, number: int) -> Optional[Answer]:
        """
        Effective answer for a question, live buffer included.

        Returns None when nothing non-empty is recorded.
        """
        question = self.quiz.question(number)
        if self._is_live_text(number):
            if self.text_buffer.strip():
                return Answer.text_for(question.type, self.text_buffer)
            return None
        return self.answers.get(number)

    def has_answer(self, number: int) -> bool:
        answer = self.answer_for(number)
        return answer is not None and not answer.is_empty

    def is_acknowledged(self) -> bool:
        """True if no consent gate is required or it has been accepted."""
        return not self.quiz.frontmatter.requires_acknowledgment or self.acknowledgment is not None

    # ─────────────────────────────────────────────────────────────────────────
    # Answers
    # ─────────────────────────────────────────────────────────────────────────

    def set_answer(self, number: int, answer: Answer) -> None:
        """
        Record an answer, or clear it if the payload is empty.

        Clearing also removes the done mark. Setting the answer of the
        current text question replaces the live buffer too.

        Raises:
            KeyError: If no question has that number
            ValueError: If the answer's tag does not match the question type
                or selects a label the question does not have
        """
        question = self.quiz.question(number)
        if answer.type is not question.type:
            raise ValueError(
                f"question {number} is {question.type.value}, got a {answer.type.value} answer"
            )
        unknown = answer.selected - set(question.labels)
        if unknown:
            raise ValueError(f"question {number} has no choice(s) {sorted(unknown)}")

        if answer.is_empty:
            self.answers.pop(number, None)
            self.done_marks.discard(number)
        else:
            self.answers[number] = answer

        if self._is_live_text(number):
            self.text_buffer = answer.text or ""

    def toggle_single(self, number: int, index: int) -> None:
        """
        Select exactly one choice of a single-choice question.

        Raises:
            ValueError: If the question is not single choice
            IndexError: If there is no choice at ``index``
        """
        question = self.quiz.question(number)
        if question.type is not QuestionType.SINGLE:
            raise ValueError(f"question {number} is not single choice")
        self.set_answer(number, Answer.single(question.choice_label(index)))

    def toggle_multi(self, number: int, index: int) -> None:
        """
        Flip one choice of a multi-choice question.

        Deselecting the last label clears the answer and its done mark.

        Raises:
            ValueError: If the question is not multi choice
            IndexError: If there is no choice at ``index``
        """
        question = self.quiz.question(number)
        if question.type is not QuestionType.MULTI:
            raise ValueError(f"question {number} is not multi choice")
        label = question.choice_label(index)
        current = self.answers.get(number)
        selected = set(current.selected) if current is not None else set()
        selected.symmetric_difference_update({label})
        self.set_answer(number, Answer.multi(selected))

    # ─────────────────────────────────────────────────────────────────────────
    # Live Text Buffer
    # ─────────────────────────────────────────────────────────────────────────

    def edit_text(self, text: str) -> None:
        """
        Replace the live buffer of the current text question.

        An edit that leaves the buffer blank drops the question's done mark
        immediately, so a persisted Done always has an answer behind it.

        Raises:
            ValueError: If the current question does not take text
        """
        question = self.current_question
        if question is None or not question.type.is_text:
            raise ValueError("current question does not take a text answer")
        self.text_buffer = text
        if not text.strip():
            self.done_marks.discard(question.number)

    def commit_buffer(self) -> None:
        """Fold the live buffer into ``answers`` (blank clears the entry)."""
        question = self.current_question
        if question is None or not question.type.is_text:
            return
        if self.text_buffer.strip():
            self.answers[question.number] = Answer.text_for(question.type, self.text_buffer)
        else:
            self.answers.pop(question.number, None)
            self.done_marks.discard(question.number)

    def load_buffer(self) -> None:
        """Load the current question's committed text into the buffer."""
        question = self.current_question
        self.text_buffer = ""
        if question is not None and question.type.is_text:
            answer = self.answers.get(question.number)
            if answer is not None:
                self.text_buffer = answer.text or ""

    # ─────────────────────────────────────────────────────────────────────────
    # Done / Flag / Status
    # ─────────────────────────────────────────────────────────────────────────

    def toggle_done(self, number: int) -> bool:
        """
        Mark or unmark a question as done.

        Returns:
            True if the mark changed. Marking fails (returns False, state
            unchanged) when the question has no answer; marking succeeds by
            clearing any flag. Unmarking always succeeds.
        """
        self.quiz.question(number)
        if number in self.done_marks:
            self.done_marks.discard(number)
            return True
        if not self.has_answer(number):
            return False
        self.done_marks.add(number)
        self.flags.discard(number)
        return True

    def toggle_flag(self, number: int) -> bool:
        """
        Flag or unflag a question for review. Flagging clears any done mark.

        Returns:
            True if the question is flagged after the call
        """
        self.quiz.question(number)
        if number in self.flags:
            self.flags.discard(number)
            return False
        self.flags.add(number)
        self.done_marks.discard(number)
        return True

    def status(self, number: int) -> QuestionStatus:
        self.quiz.question(number)
        if number in self.done_marks:
            return QuestionStatus.DONE
        if number in self.flags:
            return QuestionStatus.FLAGGED
        if self.has_answer(number):
            return QuestionStatus.ANSWERED
        if number in self.visited:
            return QuestionStatus.NOT_ANSWERED
        return QuestionStatus.UNREAD

    def status_counts(self) -> StatusCounts:
        tally = {status: 0 for status in QuestionStatus}
        for number in self.quiz.numbers:
            tally[self.status(number)] += 1
        return StatusCounts(
            total=len(self.quiz),
            done=tally[QuestionStatus.DONE],
            answered=tally[QuestionStatus.ANSWERED],
            flagged=tally[QuestionStatus.FLAGGED],
            not_answered=tally[QuestionStatus.NOT_ANSWERED],
            unread=tally[QuestionStatus.UNREAD],
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Navigation / Hints / Files
    # ─────────────────────────────────────────────────────────────────────────

    def navigate(self, index: int) -> None:
        """
        Move to the question at list position ``index``.

        Commits the pending text edit, marks the destination visited and
        loads its text answer into the buffer.

        Raises:
            IndexError: If ``index`` is out of range
        """
        if not 0 <= index < len(self.quiz):
            raise IndexError(f"no question at position {index}")
        self.commit_buffer()
        self.current_index = index
        self.visited.add(self.quiz.questions[index].number)
        self.load_buffer()

    def reveal_hint(self, number: int) -> Optional[str]:
        """
        Reveal the next hint of a question.

        Returns:
            The newly revealed hint, or None if all hints are already shown
        """
        question = self.quiz.question(number)
        shown = self.hints_revealed.get(number, 0)
        if shown >= len(question.hints):
            return None
        self.hints_revealed[number] = shown + 1
        return question.hints[shown]

    def attach_file(self, number: int, path: Path) -> None:
        """
        Append a file to a file question's answer.

        Raises:
            ValueError: If the question is not a file question
            AttachmentRejected: If the file violates the question's limits
        """
        question = self.quiz.question(number)
        if question.type is not QuestionType.FILE or question.file_constraints is None:
            raise ValueError(f"question {number} does not take files")
        current = self.answers.get(number)
        files = current.files if current is not None else ()
        validate_attachment(question.file_constraints, files, path)
        self.set_answer(number, Answer.file(files + (str(path),)))
        logger.debug(f"Attached {path.name} to question {number}")

    def remove_file(self, number: int, index: int) -> str:
        """
        Remove the file at ``index`` from a file answer.

        Returns:
            The removed path

        Raises:
            IndexError: If there is no file at ``index``
        """
        current = self.answers.get(number)
        files = list(current.files) if current is not None else []
        if not 0 <= index < len(files):
            raise IndexError(f"question {number} has no attached file at position {index}")
        removed = files.pop(index)
        self.set_answer(number, Answer.file(files))
        return removed

    # ─────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    def acknowledge(self, name: str, now: datetime) -> AckRecord:
        """
        Accept the consent gate.

        Raises:
            ValueError: If ``name`` is blank
        """
        name = name.strip()
        if not name:
            raise ValueError("acknowledgment requires a name")
        config = self.quiz.frontmatter.acknowledgment
        text = config.text if config is not None and config.text else ""
        self.acknowledgment = AckRecord(name=name, agreed_at=now, text_hash=hash_text(text))
        logger.info(f"Acknowledgment accepted by {name}")
        return self.acknowledgment

    def begin(self, now: datetime) -> None:
        """Start (or resume) answering: stamp started_at once, open the current question."""
        if self.started_at is None:
            self.started_at = now
        number = self.current_number
        if number is not None:
            self.visited.add(number)
        self.load_buffer()

    def mark_submitted(self, now: datetime) -> None:
        """Commit the live buffer and stamp the submission time."""
        self.commit_buffer()
        self.submitted_at = now
