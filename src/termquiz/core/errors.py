"""
Module: core.errors

Purpose:
    Exception taxonomy shared by the parser, persistence layer and
    submission pipeline. Each class maps to one recovery policy:

    | Exception              | Policy                                       |
    |------------------------|----------------------------------------------|
    | DocumentError          | Fatal, aborts before any session exists      |
    | StateCorruption        | Fatal, requires an explicit reset (--clear)  |
    | TransientPublishError  | Retried with backoff                         |
    | ConflictError          | Terminal, never retried                      |
    | ResourceError          | Surfaced; in-memory answers survive          |
    | AttachmentRejected     | Shown to the candidate, answer unchanged     |

Used By:
    - document.parser
    - session.state, session.persistence
    - submission.git, submission.publisher, submission.pipeline
"""

from __future__ import annotations

from typing import Optional


class TermquizError(Exception):
    """Base class for all termquiz errors."""


class DocumentError(TermquizError):
    """
    Malformed quiz document.

    Attributes:
        source: The offending heading or metadata text, when known
    """

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class StateCorruption(TermquizError):
    """
    Saved session cannot be trusted (unreadable, invalid or hash mismatch).

    Never recovered silently: the caller must reset state explicitly.

    Attributes:
        path: Snapshot file or directory involved
    """

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class TransientPublishError(TermquizError):
    """Push failed for a reason that a retry may fix (network, remote down)."""


class ConflictError(TermquizError):
    """Remote already holds a submission; retrying cannot succeed."""


class ResourceError(TermquizError):
    """
    Local I/O failure while saving state or copying attachments.

    Attributes:
        path: File or directory involved, when known
    """

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class AttachmentRejected(TermquizError):
    """A file answer violates the question's FileConstraints."""
