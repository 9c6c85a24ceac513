"""
Module: document.file_params

Purpose:
    Parse the parameter list of a ``> file(...)`` directive into
    FileConstraints. Parsing is lenient: unknown keys are ignored and a
    value that cannot be parsed leaves its field unset rather than
    failing the document.

Key Functions:
    - parse_file_constraints(): "file(max_files: 3, max_size: 5MB, accept: .rs)"
    - parse_size(): "5MB" -> 5242880

Used By:
    - document.parser
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from termquiz.core.models.questions import FileConstraints

logger = logging.getLogger(__name__)

# Binary multiples; checked longest suffix first so "5MB" is not read as "5M" + "B".
_SIZE_UNITS = (
    ("GB", 1024 ** 3),
    ("MB", 1024 ** 2),
    ("KB", 1024),
    ("B", 1),
)

_PARAMS_RE = re.compile(r"\((?P<params>.*)\)", re.DOTALL)


def parse_size(value: str) -> Optional[int]:
    """
    Parse a size with an optional case-insensitive B/KB/MB/GB suffix.

    Args:
        value: Text such as "100", "512kb" or "2 GB"

    Returns:
        Size in bytes, or None if the value is not a non-negative integer
        with a known suffix.

    Example:
        >>> parse_size("5MB")
        5242880
        >>> parse_size("2GB")
        2147483648
        >>> parse_size("100")
        100
        >>> parse_size("lots") is None
        True
    """
    text = value.strip().upper()
    multiplier = 1
    for suffix, factor in _SIZE_UNITS:
        if text.endswith(suffix):
            text = text[: -len(suffix)].strip()
            multiplier = factor
            break
    if not text.isdecimal():
        return None
    return int(text) * multiplier


def _parse_int(value: str) -> Optional[int]:
    text = value.strip()
    return int(text) if text.isdecimal() else None


def parse_file_constraints(directive: str) -> FileConstraints:
    """
    Parse a file directive such as ``file(max_files: 3, max_size: 5MB, accept: .rs .toml)``.

    A directive without parentheses yields unconstrained FileConstraints.

    Args:
        directive: Trimmed block-quote text starting with "file"

    Returns:
        FileConstraints with whatever fields parsed cleanly
    """
    match = _PARAMS_RE.search(directive)
    if not match:
        return FileConstraints()

    max_files: Optional[int] = None
    max_size: Optional[int] = None
    accept: frozenset[str] = frozenset()

    for param in match.group("params").split(","):
        if ":" not in param:
            continue
        key, value = (part.strip() for part in param.split(":", 1))
        if key == "max_files":
            max_files = _parse_int(value)
        elif key == "max_size":
            max_size = parse_size(value)
        elif key == "accept":
            accept = frozenset(value.split())
        else:
            logger.debug(f"Ignoring unknown file parameter {key!r}")

    return FileConstraints(
        max_files=max_files,
        max_size_bytes=max_size,
        accepted_extensions=accept,
    )
