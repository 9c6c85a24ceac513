"""
Module: submission.git

Purpose:
    Thin wrapper over the ``git`` command line for the working directory
    that receives the submission.

Key Classes:
    - GitRepository: is_repository / stage / commit / push /
      has_existing_submission

Used By:
    - submission.pipeline
    - cli
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Sequence

from termquiz.core.errors import ConflictError, TermquizError, TransientPublishError

logger = logging.getLogger(__name__)

SUBMISSION_PATH = "response/answers.yaml"


class GitCommandError(TermquizError):
    """A local git command (add, commit, log) failed."""

    def __init__(self, message: str, stderr: str = ""):
        super().__init__(message)
        self.stderr = stderr


class GitRepository:
    """
    Git operations on one working directory.

    Args:
        path: Working directory (repository root or any directory inside it)

    Example:
        >>> repo = GitRepository(Path("."))
        >>> if repo.is_repository():
        ...     repo.stage(["response/"])
        ...     repo.commit("termquiz: submit exam.md")
        ...     repo.push()
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _run(self, args: List[str]) -> subprocess.CompletedProcess:
        logger.debug(f"git {' '.join(args)} (in {self.path})")
        try:
            return subprocess.run(
                ["git", *args],
                cwd=self.path,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise GitCommandError(f"Failed to run git: {e}") from e

    def _checked(self, args: List[str]) -> str:
        result = self._run(args)
        if result.returncode != 0:
            raise GitCommandError(
                f"git {args[0]} failed: {result.stderr.strip()}",
                stderr=result.stderr,
            )
        return result.stdout

    def is_repository(self) -> bool:
        return (self.path / ".git").exists()

    def stage(self, paths: Sequence[str]) -> None:
        self._checked(["add", *paths])

    def commit(self, message: str) -> None:
        self._checked(["commit", "--allow-empty", "-m", message])

    def push(self) -> None:
        """
        Push the current branch.

        Raises:
            ConflictError: If the remote rejected the push
            TransientPublishError: On any other failure (network, auth, remote down)
        """
        try:
            result = self._run(["push"])
        except GitCommandError as e:
            raise TransientPublishError(str(e)) from e
        if result.returncode == 0:
            return
        stderr = result.stderr.strip()
        if "rejected" in stderr:
            raise ConflictError(stderr)
        raise TransientPublishError(stderr or f"git push exited with {result.returncode}")

    def has_existing_submission(self) -> bool:
        """
        True if a submission is already in a remote-tracking branch.

        Only pushed history counts. A local commit or a worktree copy left by a
        cancelled or fallen-back attempt does not, so resubmitting makes a fresh
        commit. The check reads refs as of the last fetch; a submission pushed
        since then surfaces as a rejected push.
        """
        try:
            out = self._checked(["log", "--remotes", "--format=%H", "--", SUBMISSION_PATH])
        except GitCommandError:
            return False
        return bool(out.strip())
