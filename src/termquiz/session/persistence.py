"""
Module: session.persistence

Purpose:
    Crash-safe snapshot of a Session, bound to the quiz's content hash.

    Layout of a state directory:
        <state_dir>/session.json      position, timestamps, acknowledgment,
                                      quiz hash, flags, done marks, hints,
                                      visited questions and the answers
                                      table keyed "q<number>"
        <state_dir>/attachments/q<n>/ copies of attached files
        <state_dir>/.lock             portalocker lock file

    The whole snapshot is one file replaced atomically, so a crash leaves
    either the previous snapshot or the new one, never a mix. It is
    validated against the shipped JSON schemas on load. A snapshot that
    fails validation, breaks a session invariant, or was taken of a
    different document is never repaired: load raises StateCorruption and
    the caller must reset.

Key Classes:
    - SnapshotStore: save / load / clear / store_attachment / export

Key Functions:
    - state_dir_for(): Default state directory for a document path

Dependencies:
    - portalocker (via core.utils.file_locking)
    - jsonschema (via core.schemas)

Used By:
    - app.controller
    - submission.pipeline (clears state once published)
    - cli
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from termquiz.core.errors import ResourceError, StateCorruption
from termquiz.core.models.answers import Answer
from termquiz.core.models.frontmatter import AckRecord
from termquiz.core.models.questions import Quiz
from termquiz.core.schemas import (
    SESSION_SCHEMA_VERSION,
    ValidationError,
    validate_session,
)
from termquiz.core.utils.file_locking import atomic_write_text, locked_directory
from termquiz.core.utils.hashing import short_path_digest
from termquiz.core.utils.timeutil import format_iso, parse_timestamp

from .state import Session

logger = logging.getLogger(__name__)

SESSION_FILE = "session.json"
ATTACHMENTS_DIR = "attachments"

STATE_ENV_VAR = "TERMQUIZ_STATE"

RESET_HINT = "run termquiz with --clear to reset saved progress"


def state_dir_for(document_path: Path) -> Path:
    """
    Resolve the state directory for a quiz document.

    Order:
        1. ``$TERMQUIZ_STATE`` verbatim
        2. ``$XDG_STATE_HOME/termquiz/<digest>``
        3. ``~/.local/state/termquiz/<digest>``

    ``<digest>`` is the first 4 bytes (8 hex chars) of the SHA-256 of the
    resolved document path, so each document gets its own directory.
    """
    override = os.environ.get(STATE_ENV_VAR)
    if override:
        return Path(override)

    digest = short_path_digest(document_path.resolve())
    state_home = os.environ.get("XDG_STATE_HOME")
    base = Path(state_home) if state_home else Path.home() / ".local" / "state"
    return base / "termquiz" / digest


def _qkey(number: int) -> str:
    return f"q{number}"


def _qnumber(key: str) -> int:
    return int(key[1:])


def answers_table(answers: Dict[int, Answer]) -> Dict[str, Any]:
    """Answers keyed ``q<number>`` in question-number order."""
    return {_qkey(n): answers[n].to_dict() for n in sorted(answers)}


class SnapshotStore:
    """
    Durable snapshot of one Session in one state directory.

    Args:
        state_dir: Directory holding the snapshot (created on first save)

    Example:
        >>> store = SnapshotStore(state_dir_for(Path("exam.md")))
        >>> session = store.load(quiz) or Session(quiz)
        >>> session.toggle_single(1, 0)
        >>> store.save(session)
    """

    def __init__(self, state_dir: Path):
        self.state_dir = Path(state_dir)

    @property
    def session_path(self) -> Path:
        return self.state_dir / SESSION_FILE

    @property
    def attachments_dir(self) -> Path:
        return self.state_dir / ATTACHMENTS_DIR

    def exists(self) -> bool:
        return self.session_path.exists()

    # ─────────────────────────────────────────────────────────────────────────
    # Save
    # ─────────────────────────────────────────────────────────────────────────

    def _session_descriptor(self, session: Session, answers: Dict[int, Answer]) -> Dict[str, Any]:
        return {
            "schema_version": SESSION_SCHEMA_VERSION,
            "quiz_hash": session.quiz.source_hash,
            "source_name": session.quiz.source_name,
            "current_index": session.current_index,
            "started_at": format_iso(session.started_at),
            "submitted_at": format_iso(session.submitted_at),
            "acknowledgment": (
                session.acknowledgment.to_dict() if session.acknowledgment is not None else None
            ),
            "flags": sorted(session.flags),
            "done_marks": sorted(session.done_marks),
            "hints_revealed": {
                _qkey(n): count
                for n, count in sorted(session.hints_revealed.items())
                if count > 0
            },
            "visited": sorted(session.visited),
            "answers": answers_table(answers),
        }

    def save(self, session: Session) -> None:
        """
        Write the snapshot atomically under the state-directory lock.

        The live text buffer is folded into the answers table so a crash
        mid-edit loses nothing typed before the last save. The session
        itself is not modified.

        Raises:
            ResourceError: If the directory or the snapshot cannot be written
        """
        answers = dict(session.answers)
        question = session.current_question
        if question is not None and question.type.is_text:
            if session.text_buffer.strip():
                answers[question.number] = Answer.text_for(question.type, session.text_buffer)
            else:
                answers.pop(question.number, None)

        descriptor = self._session_descriptor(session, answers)
        # A done mark can outlive its buffer between edits; never persist one.
        descriptor["done_marks"] = [n for n in descriptor["done_marks"] if n in answers]

        try:
            with locked_directory(self.state_dir):
                atomic_write_text(self.session_path, json.dumps(descriptor, indent=2))
        except OSError as e:
            raise ResourceError(f"Cannot save progress: {e}", path=str(self.state_dir)) from e

        logger.debug(f"Saved snapshot to {self.state_dir}")

    # ─────────────────────────────────────────────────────────────────────────
    # Load
    # ─────────────────────────────────────────────────────────────────────────

    def _read_json(self, path: Path) -> Any:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise StateCorruption(f"Corrupt {path.name}: {e} ({RESET_HINT})", path=str(path)) from e
        except OSError as e:
            raise StateCorruption(f"Cannot read {path.name}: {e} ({RESET_HINT})", path=str(path)) from e

    def load(self, quiz: Quiz) -> Optional[Session]:
        """
        Restore the Session saved for ``quiz``.

        Returns:
            The restored Session, or None if no snapshot exists

        Raises:
            StateCorruption: If the snapshot is unreadable, fails schema
                validation, breaks a session invariant, or was saved for a
                different version of the document
        """
        if not self.session_path.exists():
            return None

        descriptor = self._read_json(self.session_path)
        try:
            validate_session(descriptor)
        except ValidationError as e:
            raise StateCorruption(
                f"Invalid {SESSION_FILE} at '{e.path}': {e} ({RESET_HINT})",
                path=str(self.session_path),
            ) from e

        if descriptor["quiz_hash"] != quiz.source_hash:
            raise StateCorruption(
                "The quiz document changed since progress was saved; "
                f"reset required ({RESET_HINT})",
                path=str(self.state_dir),
            )

        try:
            session = self._restore(quiz, descriptor, descriptor["answers"])
        except (KeyError, ValueError) as e:
            raise StateCorruption(
                f"Saved progress does not match the quiz: {e} ({RESET_HINT})",
                path=str(self.state_dir),
            ) from e

        logger.info(
            f"Resumed session: {len(session.answers)} answers, "
            f"question {session.current_index + 1} of {len(quiz)}"
        )
        return session

    @staticmethod
    def _check_numbers(quiz: Quiz, field_name: str, numbers: Iterable[int]) -> None:
        for n in numbers:
            if n not in quiz:
                raise ValueError(f"{field_name} refers to unknown question {n}")

    def _restore(self, quiz: Quiz, descriptor: Dict[str, Any], table: Dict[str, Any]) -> Session:
        session = Session(quiz)

        for key, entry in table.items():
            number = _qnumber(key)
            question = quiz.question(number)
            answer = Answer.from_dict(entry)
            if answer.type is not question.type:
                raise ValueError(
                    f"answer to question {number} is {answer.type.value}, "
                    f"question is {question.type.value}"
                )
            if not answer.selected <= set(question.labels):
                raise ValueError(f"answer to question {number} selects unknown choices")
            if not answer.is_empty:
                session.answers[number] = answer

        flags = set(descriptor["flags"])
        done = set(descriptor["done_marks"])
        visited = set(descriptor["visited"])
        self._check_numbers(quiz, "flags", flags)
        self._check_numbers(quiz, "done_marks", done)
        self._check_numbers(quiz, "visited", visited)
        if flags & done:
            raise ValueError(f"questions {sorted(flags & done)} are both done and flagged")
        if not done <= set(session.answers):
            raise ValueError(f"questions {sorted(done - set(session.answers))} are done without an answer")

        hints: Dict[int, int] = {}
        for key, count in descriptor["hints_revealed"].items():
            number = _qnumber(key)
            available = len(quiz.question(number).hints)
            if count > available:
                raise ValueError(f"{count} hints revealed for question {number}, which has {available}")
            if count:
                hints[number] = count

        session.flags = flags
        session.done_marks = done
        session.visited = visited
        session.hints_revealed = hints

        if descriptor["started_at"] is not None:
            session.started_at = parse_timestamp(descriptor["started_at"])
        if descriptor["submitted_at"] is not None:
            session.submitted_at = parse_timestamp(descriptor["submitted_at"])
        if descriptor["acknowledgment"] is not None:
            session.acknowledgment = AckRecord.from_dict(descriptor["acknowledgment"])

        if quiz.questions:
            session.current_index = min(descriptor["current_index"], len(quiz) - 1)
        session.load_buffer()
        return session

    # ─────────────────────────────────────────────────────────────────────────
    # Clear / Attachments / Export
    # ─────────────────────────────────────────────────────────────────────────

    def clear(self) -> None:
        """
        Delete the whole state directory.

        Raises:
            ResourceError: If it exists but cannot be removed
        """
        if not self.state_dir.exists():
            return
        try:
            shutil.rmtree(self.state_dir)
        except OSError as e:
            raise ResourceError(f"Cannot clear state: {e}", path=str(self.state_dir)) from e
        logger.info(f"Cleared saved progress in {self.state_dir}")

    def store_attachment(self, source: Path, number: int) -> Path:
        """
        Copy a chosen file into ``attachments/q<number>/``.

        The copy, not the original, is what the answer records, so the file
        answer survives the candidate moving or editing the source.

        Returns:
            Path of the stored copy

        Raises:
            ResourceError: If the copy fails
        """
        target_dir = self.attachments_dir / _qkey(number)
        target = target_dir / source.name
        if source.resolve() == target.resolve():
            return target
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
        except OSError as e:
            raise ResourceError(f"Cannot store attachment {source}: {e}", path=str(source)) from e
        logger.debug(f"Stored attachment {source.name} for question {number}")
        return target

    def discard_attachment(self, path: Path) -> None:
        """Delete a stored copy once it is no longer part of any answer."""
        stored = Path(path)
        if self.attachments_dir.resolve() not in stored.resolve().parents:
            return
        try:
            stored.unlink(missing_ok=True)
        except OSError as e:
            raise ResourceError(f"Cannot remove attachment {stored}: {e}", path=str(stored)) from e

    def export(self, session: Session, path: Path) -> None:
        """
        Write the answers table (live buffer included) to ``path`` as JSON.

        Raises:
            ResourceError: If the file cannot be written
        """
        answers = {n: a for n in session.quiz.numbers if (a := session.answer_for(n)) is not None}
        try:
            atomic_write_text(Path(path), json.dumps(answers_table(answers), indent=2))
        except OSError as e:
            raise ResourceError(f"Cannot export answers: {e}", path=str(path)) from e
        logger.info(f"Exported {len(answers)} answers to {path}")
