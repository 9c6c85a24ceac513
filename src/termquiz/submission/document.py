"""
Module: submission.document

Purpose:
    Freeze a Session into the submission document (``response/answers.yaml``)
    and the commit message that accompanies it.

Document layout::

    quiz:
      file: exam.md
      title: Midterm
      hash: sha256:...
      started_at: '2025-01-02T10:00:00-05:00'
      submitted_at: '2025-01-02T11:22:34-05:00'
      duration: '01:22:34'
      acknowledged: true
      acknowledgment: {name: ..., agreed_at: ..., text_hash: ...}
      termquiz_version: 0.4.0
    session:
      current_question: 0
      quiz_file_hash: sha256:...
    questions:
    - number: 1
      title: ...
      type: single
      choices: {a: ..., b: ...}
      answer: b                 # null when unanswered
      done: true
      flagged: false
      hint_used: false
      hints_revealed: 0

Key Functions:
    - build_submission_document(): Session -> plain dict
    - dump_yaml(): dict -> YAML text
    - build_commit_message(): Session -> commit message

Dependencies:
    - yaml (PyYAML): document serialization

Used By:
    - submission.response
    - submission.pipeline
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import yaml

from termquiz import __version__
from termquiz.core.models.answers import Answer
from termquiz.core.models.questions import Question, QuestionType
from termquiz.core.utils.timeutil import format_duration, format_iso
from termquiz.session.state import Session

RESPONSE_DIR = "response"
DOCUMENT_NAME = "answers.yaml"
FILES_DIR = "files"


class _SubmissionDumper(yaml.SafeDumper):
    """SafeDumper that writes multi-line strings as literal blocks."""


def _str_representer(dumper: yaml.SafeDumper, value: str) -> yaml.ScalarNode:
    if "\n" in value:
        return dumper.represent_scalar("tag:yaml.org,2002:str", value, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", value)


_SubmissionDumper.add_representer(str, _str_representer)


def attachment_relpath(number: int, path: str) -> str:
    """Location of an attached file inside ``response/``."""
    name = path.replace("\\", "/").rsplit("/", 1)[-1]
    return f"{FILES_DIR}/q{number}/{name}"


def _answer_value(question: Question, answer: Optional[Answer]) -> Any:
    """Render an answer for the document; None when nothing is recorded."""
    if answer is None or answer.is_empty:
        return None
    kind = answer.type
    if kind is QuestionType.SINGLE:
        return answer.sorted_labels[0]
    if kind is QuestionType.MULTI:
        return list(answer.sorted_labels)
    if kind.is_text:
        return answer.text
    if kind is QuestionType.FILE:
        return [attachment_relpath(question.number, p) for p in answer.files]
    raise ValueError(f"Unknown answer type: {kind!r}")


def _question_entry(session: Session, question: Question) -> Dict[str, Any]:
    revealed = session.hints_revealed.get(question.number, 0)
    entry: Dict[str, Any] = {
        "number": question.number,
        "title": question.title,
        "type": question.type.value,
    }
    if question.choices:
        entry["choices"] = {c.label: c.text for c in question.choices}
    entry["answer"] = _answer_value(question, session.answer_for(question.number))
    entry["done"] = question.number in session.done_marks
    entry["flagged"] = question.number in session.flags
    entry["hint_used"] = revealed > 0
    entry["hints_revealed"] = revealed
    return entry


def build_submission_document(session: Session) -> Dict[str, Any]:
    """
    Build the submission document as plain data.

    The live text buffer counts as the current question's answer.

    Args:
        session: Session to freeze (``submitted_at`` should already be set)

    Returns:
        Dict with ``quiz``, ``session`` and ``questions`` keys, ready for
        ``dump_yaml``
    """
    quiz = session.quiz
    duration = None
    if session.started_at is not None and session.submitted_at is not None:
        duration = format_duration((session.submitted_at - session.started_at).total_seconds())

    meta: Dict[str, Any] = {
        "file": quiz.source_name,
        "title": quiz.title,
        "hash": quiz.source_hash,
        "started_at": format_iso(session.started_at),
        "submitted_at": format_iso(session.submitted_at),
        "duration": duration,
        "acknowledged": session.acknowledgment is not None,
    }
    if session.acknowledgment is not None:
        meta["acknowledgment"] = session.acknowledgment.to_dict()
    meta["termquiz_version"] = __version__

    questions: List[Dict[str, Any]] = [_question_entry(session, q) for q in quiz.questions]

    return {
        "quiz": meta,
        "session": {
            "current_question": session.current_index,
            "quiz_file_hash": quiz.source_hash,
        },
        "questions": questions,
    }


def dump_yaml(document: Dict[str, Any]) -> str:
    """Serialize a submission document, keeping key order."""
    return yaml.dump(
        document,
        Dumper=_SubmissionDumper,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )


def build_commit_message(session: Session) -> str:
    """
    Summary commit message for a submission.

    Example:
        termquiz: submit exam.md

        Started: 2025-01-02T10:00:00-05:00
        Submitted: 2025-01-02T11:22:34-05:00
        Questions: 5 (1 done, 0 answered, 1 flagged, 3 not answered)
    """
    counts = session.status_counts()
    started = format_iso(session.started_at) or "unknown"
    submitted = format_iso(session.submitted_at) or "unknown"
    return (
        f"termquiz: submit {session.quiz.source_name}\n"
        f"\n"
        f"Started: {started}\n"
        f"Submitted: {submitted}\n"
        f"Questions: {counts.total} ({counts.done} done, {counts.answered} answered, "
        f"{counts.flagged} flagged, {counts.unanswered} not answered)"
    )
