"""
Module: document.frontmatter

Purpose:
    Split the leading ``---`` YAML block off a quiz document and decode it
    into a Frontmatter.

Key Functions:
    - split_frontmatter(): text -> (yaml_text, body_text)
    - parse_frontmatter(): yaml_text -> Frontmatter

Dependencies:
    - yaml (PyYAML): safe_load of the metadata block

Used By:
    - document.parser
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Tuple

import yaml

from termquiz.core.errors import DocumentError
from termquiz.core.models.frontmatter import AckConfig, Frontmatter
from termquiz.core.utils.timeutil import parse_timestamp

DELIMITER = "---"


def split_frontmatter(text: str) -> Tuple[str, str]:
    """
    Separate the metadata block from the markdown body.

    Args:
        text: Full document text

    Returns:
        Tuple of (metadata YAML, body markdown)

    Raises:
        DocumentError: If the document does not open with ``---`` or the
            block is never closed
    """
    stripped = text.lstrip("\ufeff").lstrip()
    if not stripped.startswith(DELIMITER):
        raise DocumentError("Quiz file must start with YAML frontmatter (---)")

    after_open = stripped[len(DELIMITER):]
    close = after_open.find("\n" + DELIMITER)
    if close < 0:
        raise DocumentError("No closing --- for frontmatter")

    metadata = after_open[:close].strip()
    body = after_open[close + 1 + len(DELIMITER):]
    # Drop the remainder of the closing delimiter line
    newline = body.find("\n")
    body = body[newline + 1:] if newline >= 0 else ""
    return metadata, body


def _timestamp(data: dict, key: str) -> datetime:
    if key not in data or data[key] is None:
        raise DocumentError(f"Invalid frontmatter: missing '{key}' timestamp", source=key)
    try:
        return parse_timestamp(data[key])
    except ValueError as e:
        raise DocumentError(f"Invalid frontmatter: '{key}': {e}", source=f"{key}: {data[key]}") from e


def _acknowledgment(raw: Any) -> AckConfig | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise DocumentError(
            "Invalid frontmatter: 'acknowledgment' must be a mapping",
            source=f"acknowledgment: {raw}",
        )
    required = raw.get("required", False)
    if not isinstance(required, bool):
        raise DocumentError(
            "Invalid frontmatter: 'acknowledgment.required' must be true or false",
            source=f"required: {required}",
        )
    text = raw.get("text")
    return AckConfig(required=required, text=str(text).strip() if text is not None else None)


def parse_frontmatter(metadata: str) -> Frontmatter:
    """
    Decode the metadata block.

    Example block::

        title: Midterm
        start: 2025-01-02T10:00:00-05:00
        end: 2025-01-02T12:00:00-05:00
        acknowledgment:
          required: true
          text: I will not use outside help.

    Raises:
        DocumentError: On invalid YAML, a non-mapping block, missing or
            offset-less timestamps, or end not after start
    """
    try:
        data = yaml.safe_load(metadata) if metadata else None
    except yaml.YAMLError as e:
        raise DocumentError(f"Invalid frontmatter: {e}", source=metadata) from e

    if not isinstance(data, dict):
        raise DocumentError("Invalid frontmatter: expected key/value pairs", source=metadata)

    start = _timestamp(data, "start")
    end = _timestamp(data, "end")
    title = data.get("title")

    try:
        return Frontmatter(
            start=start,
            end=end,
            title=str(title).strip() if title is not None else None,
            acknowledgment=_acknowledgment(data.get("acknowledgment")),
        )
    except ValueError as e:
        raise DocumentError(f"Invalid frontmatter: {e}", source=metadata) from e
