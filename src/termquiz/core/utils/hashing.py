"""Content hashes used as resumption identity and acknowledgment proof."""

from __future__ import annotations

import hashlib
from pathlib import Path

HASH_PREFIX = "sha256:"


def hash_bytes(data: bytes) -> str:
    """Return ``"sha256:<hex>"`` for raw bytes."""
    return HASH_PREFIX + hashlib.sha256(data).hexdigest()


def hash_text(text: str) -> str:
    """Return ``"sha256:<hex>"`` of the UTF-8 encoding of ``text``."""
    return hash_bytes(text.encode("utf-8"))


def hash_file(path: Path) -> str:
    """Hash a file's bytes."""
    return hash_bytes(path.read_bytes())


def short_path_digest(path: Path, length: int = 8) -> str:
    """Short hex digest of a path string, used to name per-document state dirs."""
    return hashlib.sha256(str(path).encode("utf-8")).hexdigest()[:length]
