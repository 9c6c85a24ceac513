"""
Module: core.utils.file_locking

Purpose:
    Atomic file replacement and cross-process locking for the snapshot
    and response directories. Uses portalocker for Mac, Windows, and
    Linux compatibility.

Key Functions:
    - atomic_write_text: Write-temp-then-replace so readers never see a
      half-written file
    - locked_directory: Context manager holding an exclusive lock file

Dependencies:
    - portalocker: Cross-platform file locking

Used By:
    - session.persistence: Snapshot saves
    - submission.response: Submission document
"""

from __future__ import annotations

import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

import portalocker

logger = logging.getLogger(__name__)

LOCK_FILE_NAME = ".lock"


def atomic_write_text(path: Path, content: str) -> None:
    """
    Write ``content`` to ``path`` atomically.

    The data goes to a temporary file in the same directory, is flushed and
    fsynced, then replaces the target in one rename. A crash at any point
    leaves either the old file or the new one, never a partial file.

    Args:
        path: Target file
        content: Text to write (UTF-8)

    Raises:
        OSError: If the directory cannot be created or the write fails
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=path.parent,
        delete=False,
    ) as f:
        temp_path = Path(f.name)
        try:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        except BaseException:
            f.close()
            temp_path.unlink(missing_ok=True)
            raise

    try:
        temp_path.replace(path)
    except OSError:
        temp_path.unlink(missing_ok=True)
        raise


@contextmanager
def locked_directory(
    directory: Path,
    lock_type: int = portalocker.LOCK_EX,
) -> Generator[Path, None, None]:
    """
    Hold an exclusive lock on ``directory`` for the duration of the block.

    The lock lives in a ``.lock`` file inside the directory so two termquiz
    processes opened on the same document never interleave snapshot writes.

    Args:
        directory: Directory to lock (created if missing)
        lock_type: portalocker lock flags

    Yields:
        The directory path, with the lock held.

    Example:
        >>> with locked_directory(state_dir):
        ...     atomic_write_text(state_dir / "session.json", data)
    """
    directory.mkdir(parents=True, exist_ok=True)
    lock_path = directory / LOCK_FILE_NAME

    with open(lock_path, "a", encoding="utf-8") as f:
        portalocker.lock(f, lock_type)
        try:
            yield directory
        finally:
            portalocker.unlock(f)
