"""
Module: session.attachments

Purpose:
    Check a candidate-chosen file against a question's FileConstraints
    before it is recorded as part of a file answer.

Key Functions:
    - validate_attachment(): Raise AttachmentRejected on any violation

Used By:
    - session.state.Session.attach_file
    - app.controller
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from termquiz.core.errors import AttachmentRejected
from termquiz.core.models.questions import FileConstraints

logger = logging.getLogger(__name__)


def validate_attachment(
    constraints: FileConstraints,
    existing: Sequence[str],
    path: Path,
) -> int:
    """
    Validate one file against the question's limits.

    Args:
        constraints: Limits from the ``> file(...)`` directive
        existing: Paths already attached to this question
        path: Candidate file

    Returns:
        Size of the file in bytes

    Raises:
        AttachmentRejected: If the file is missing, not a regular file, too
            large, of a non-accepted extension, would exceed ``max_files``, or
            shares a name with a file already attached

    Example:
        >>> validate_attachment(FileConstraints(accepted_extensions=frozenset({".rs"})), [], Path("main.rs"))
        1042
    """
    if not path.exists():
        raise AttachmentRejected(f"File not found: {path}")
    if not path.is_file():
        raise AttachmentRejected(f"Not a file: {path}")

    if constraints.max_files is not None and len(existing) >= constraints.max_files:
        raise AttachmentRejected(
            f"At most {constraints.max_files} file(s) may be attached to this question"
        )

    if any(Path(p).name == path.name for p in existing):
        raise AttachmentRejected(f"A file named '{path.name}' is already attached")

    try:
        size = path.stat().st_size
    except OSError as e:
        raise AttachmentRejected(f"Cannot stat file: {e}") from e

    if constraints.max_size_bytes is not None and size > constraints.max_size_bytes:
        raise AttachmentRejected(
            f"File too large: {size} bytes (max {constraints.max_size_bytes} bytes)"
        )

    accepted = constraints.accepted_extensions
    if accepted and path.suffix not in accepted:
        raise AttachmentRejected(
            f"File type '{path.suffix}' not allowed. Accepted: {', '.join(sorted(accepted))}"
        )

    logger.debug(f"Accepted attachment {path} ({size} bytes)")
    return size
