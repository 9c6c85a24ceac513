"""
Module: submission.response

Purpose:
    Write the frozen submission into the working directory:
    ``response/answers.yaml`` plus copies of attached files under
    ``response/files/q<n>/``.

Key Functions:
    - write_response(): Session + working dir -> path of answers.yaml

Used By:
    - submission.pipeline
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from termquiz.core.errors import ResourceError
from termquiz.core.models.questions import QuestionType
from termquiz.core.utils.file_locking import atomic_write_text
from termquiz.session.state import Session

from .document import (
    DOCUMENT_NAME,
    FILES_DIR,
    RESPONSE_DIR,
    attachment_relpath,
    build_submission_document,
    dump_yaml,
)

logger = logging.getLogger(__name__)


def response_dir_for(working_dir: Path) -> Path:
    return working_dir / RESPONSE_DIR


def _copy_attachments(session: Session, response_dir: Path) -> int:
    files_dir = response_dir / FILES_DIR
    # Start clean so files removed since an earlier attempt do not linger.
    if files_dir.exists():
        shutil.rmtree(files_dir)

    copied = 0
    for question in session.quiz.questions:
        if question.type is not QuestionType.FILE:
            continue
        answer = session.answers.get(question.number)
        if answer is None:
            continue
        for path in answer.files:
            source = Path(path)
            if not source.is_file():
                raise ResourceError(f"Attached file is missing: {source}", path=str(source))
            target = response_dir / attachment_relpath(question.number, path)
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
            copied += 1
    return copied


def write_response(session: Session, working_dir: Path) -> Path:
    """
    Write the submission document and attachments.

    Args:
        session: Session with ``submitted_at`` already stamped
        working_dir: Directory that will hold ``response/``

    Returns:
        Path of the written ``answers.yaml``

    Raises:
        ResourceError: If an attachment is missing or any write fails
    """
    response_dir = response_dir_for(working_dir)
    document_path = response_dir / DOCUMENT_NAME
    try:
        response_dir.mkdir(parents=True, exist_ok=True)
        copied = _copy_attachments(session, response_dir)
        atomic_write_text(document_path, dump_yaml(build_submission_document(session)))
    except OSError as e:
        raise ResourceError(f"Cannot write submission: {e}", path=str(response_dir)) from e

    logger.info(f"Wrote {document_path} ({copied} attached file(s))")
    return document_path
