"""
Module: submission.pipeline

Purpose:
    Drive one submission from the frozen session to a durable result.

State machine::

    COMPOSING ──submit──> PUBLISHING ──success──> PUBLISHED
        ^   │                 │  └──conflict──> ALREADY_SUBMITTED
        │   │                 └──failure──> RETRYING_PUBLISH
        │   │                                  ├─success──> PUBLISHED
        │   │                                  ├─conflict─> ALREADY_SUBMITTED
        │   │                                  └─ceiling──> LOCAL_FALLBACK
        │   └──no git repository──> LOCAL_FALLBACK
        └────────────cancel─────── RETRYING_PUBLISH

    The commit is made once per submit on the controller thread; only the
    push runs on the worker. Cancelling keeps the local commit, and the
    next submit makes a fresh commit with a fresh cancel flag.

Key Classes:
    - PipelineState: The states above
    - SubmissionPipeline: submit / handle_event / poll / cancel

Dependencies:
    - submission.response, submission.document, submission.publisher
    - session.persistence.SnapshotStore

Used By:
    - app.controller
    - cli (--submit)
"""

from __future__ import annotations

import logging
import queue
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Protocol

from termquiz.config import PublishConfig
from termquiz.core.errors import ResourceError
from termquiz.core.utils.timeutil import utc_now
from termquiz.session.persistence import SnapshotStore
from termquiz.session.state import Session

from .document import RESPONSE_DIR, build_commit_message
from .git import GitCommandError
from .publisher import PublishEvent, PublishEventKind, PublishHandle, WaitFn, start_publish
from .response import write_response

logger = logging.getLogger(__name__)


class Repository(Protocol):
    """Version-control collaborator; GitRepository satisfies it."""

    def is_repository(self) -> bool: ...

    def stage(self, paths: List[str]) -> None: ...

    def commit(self, message: str) -> None: ...

    def push(self) -> None: ...


class PipelineState(str, Enum):
    COMPOSING = "composing"
    PUBLISHING = "publishing"
    RETRYING_PUBLISH = "retrying_publish"
    PUBLISHED = "published"
    ALREADY_SUBMITTED = "already_submitted"
    LOCAL_FALLBACK = "local_fallback"

    @property
    def is_terminal(self) -> bool:
        return self in (
            PipelineState.PUBLISHED,
            PipelineState.ALREADY_SUBMITTED,
            PipelineState.LOCAL_FALLBACK,
        )


@dataclass(frozen=True)
class RetryProgress:
    """Latest retry report, for the retry screen."""

    attempt: int
    wait_seconds: int
    elapsed_seconds: int
    error: str


class SubmissionPipeline:
    """
    Submission state machine for one session.

    Args:
        session: Session to submit
        store: Snapshot store; saved at submit, cleared once published
        working_dir: Directory receiving ``response/`` (the repository root)
        repository: Version-control collaborator, or None for local only
        config: Push retry policy
        wait: Backoff wait override passed to the worker (tests)
        clock: Source of the submission timestamp

    Example:
        >>> pipeline = SubmissionPipeline(session, store, Path("."), GitRepository(Path(".")))
        >>> pipeline.submit()
        <PipelineState.PUBLISHING: 'publishing'>
        >>> pipeline.wait_until_final()
        <PipelineState.PUBLISHED: 'published'>
    """

    def __init__(
        self,
        session: Session,
        store: SnapshotStore,
        working_dir: Path,
        repository: Optional[Repository] = None,
        config: PublishConfig = PublishConfig(),
        wait: Optional[WaitFn] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session = session
        self.store = store
        self.working_dir = Path(working_dir)
        self.repository = repository
        self.config = config
        self.wait = wait
        self.clock = clock

        self.state = PipelineState.COMPOSING
        self.events: "queue.Queue[PublishEvent]" = queue.Queue()
        self.handle: Optional[PublishHandle] = None
        self.progress: Optional[RetryProgress] = None
        self.response_path: Optional[Path] = None
        self.last_error = ""

    # ─────────────────────────────────────────────────────────────────────────
    # Submit
    # ─────────────────────────────────────────────────────────────────────────

    def submit(self) -> PipelineState:
        """
        Freeze the session, write ``response/``, commit and start pushing.

        Returns:
            PUBLISHING, or LOCAL_FALLBACK when there is no repository or the
            commit fails

        Raises:
            RuntimeError: If a submission is already in progress or finished
            ResourceError: If the response cannot be written; the pipeline
                stays in COMPOSING
        """
        if self.state is not PipelineState.COMPOSING:
            raise RuntimeError(f"cannot submit while {self.state.value}")

        self.session.mark_submitted(self.clock())
        self.progress = None
        self.last_error = ""
        try:
            self.store.save(self.session)
        except ResourceError as e:
            logger.warning(f"Could not save progress before submitting: {e}")

        try:
            self.response_path = write_response(self.session, self.working_dir)
        except ResourceError:
            self._reopen("a failed write")
            raise

        if self.repository is None or not self.repository.is_repository():
            logger.info("No git repository; submission kept locally")
            self.state = PipelineState.LOCAL_FALLBACK
            return self.state

        try:
            self.repository.stage([f"{RESPONSE_DIR}/"])
            self.repository.commit(build_commit_message(self.session))
        except GitCommandError as e:
            logger.error(f"Could not commit submission: {e}")
            self.last_error = str(e)
            self.state = PipelineState.LOCAL_FALLBACK
            return self.state

        # The queue is per submission so events from a cancelled worker never leak in.
        self.events = queue.Queue()
        self.state = PipelineState.PUBLISHING
        self.handle = start_publish(self.repository.push, self.events, self.config, self.wait)
        return self.state

    def _reopen(self, after: str) -> None:
        """Clear the submission time and save, so the snapshot is back to composing."""
        self.session.submitted_at = None
        try:
            self.store.save(self.session)
        except ResourceError as e:
            logger.warning(f"Could not save progress after {after}: {e}")

    # ─────────────────────────────────────────────────────────────────────────
    # Worker Events
    # ─────────────────────────────────────────────────────────────────────────

    def handle_event(self, event: PublishEvent) -> PipelineState:
        """Apply one worker event and return the new state."""
        kind = event.kind
        if kind is PublishEventKind.SUCCESS:
            self.state = PipelineState.PUBLISHED
            try:
                self.store.clear()
            except ResourceError as e:
                logger.warning(f"Submitted, but could not clear saved progress: {e}")
        elif kind is PublishEventKind.RETRYING:
            self.state = PipelineState.RETRYING_PUBLISH
            self.progress = RetryProgress(
                attempt=event.attempt,
                wait_seconds=event.wait_seconds,
                elapsed_seconds=event.elapsed_seconds,
                error=event.error,
            )
        elif kind is PublishEventKind.CONFLICT:
            self.state = PipelineState.ALREADY_SUBMITTED
            self.last_error = event.error
        elif kind is PublishEventKind.TIMEOUT:
            self.state = PipelineState.LOCAL_FALLBACK
            self.last_error = event.error
        elif kind is PublishEventKind.CANCELLED:
            self.state = PipelineState.COMPOSING
            self.handle = None
            self.progress = None
            self._reopen("cancelling")
        else:
            raise ValueError(f"Unknown publish event: {kind!r}")

        logger.debug(f"Submission state -> {self.state.value}")
        return self.state

    def poll(self) -> List[PublishEvent]:
        """Apply every pending worker event without blocking."""
        applied: List[PublishEvent] = []
        while True:
            try:
                event = self.events.get_nowait()
            except queue.Empty:
                return applied
            self.handle_event(event)
            applied.append(event)

    def wait_until_final(self, timeout: Optional[float] = None) -> PipelineState:
        """
        Block until the worker reports a final event.

        Raises:
            queue.Empty: If ``timeout`` elapses first
        """
        while self.state in (PipelineState.PUBLISHING, PipelineState.RETRYING_PUBLISH):
            event = self.events.get(timeout=timeout)
            self.handle_event(event)
        return self.state

    def cancel(self) -> bool:
        """
        Ask the worker to stop retrying.

        Returns:
            True if a cancel was requested; the CANCELLED event follows
        """
        if self.handle is None or self.state not in (
            PipelineState.PUBLISHING,
            PipelineState.RETRYING_PUBLISH,
        ):
            return False
        self.handle.cancel()
        return True

    def recovery_instructions(self) -> str:
        """Manual steps shown when publishing fell back to the local copy."""
        location = self.response_path or (self.working_dir / RESPONSE_DIR)
        lines = [f"Your answers are saved locally in {location}."]
        if self.repository is not None and self.repository.is_repository():
            lines.append(
                f"They are committed but not pushed. When the network is back, run:\n"
                f"    cd {self.working_dir}\n"
                f"    git push"
            )
        else:
            lines.append("This directory is not a git repository; hand in the response folder manually.")
        if self.last_error:
            lines.append(f"Last error: {self.last_error}")
        return "\n".join(lines)
