"""
Module: submission.publisher

Purpose:
    Push a committed submission with bounded exponential backoff on a
    background thread, reporting progress as PublishEvents on a queue.

    The worker owns no session state. Its only link to the controller is
    the event queue (worker -> controller) and a threading.Event the
    controller sets to cancel. Cancellation is cooperative: it is checked
    before each attempt and during each backoff wait, never interrupting a
    push already running.

Retry policy (PublishConfig defaults):
    - wait 2s after the first failure, doubling, capped at 30s
    - a conflict (remote rejected the push) ends at once, never retried
    - once cumulative waiting reaches 600s the next failure ends in TIMEOUT

Key Classes:
    - PublishEvent / PublishEventKind: Worker -> controller messages
    - PublishHandle: Running worker plus its cancel flag and event queue

Key Functions:
    - push_with_retry(): The retry loop (runs on the worker thread)
    - start_publish(): Spawn the worker

Used By:
    - submission.pipeline
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from termquiz.config import PublishConfig
from termquiz.core.errors import ConflictError, TransientPublishError

logger = logging.getLogger(__name__)

PushFn = Callable[[], None]
WaitFn = Callable[[float], bool]


class PublishEventKind(str, Enum):
    SUCCESS = "success"
    RETRYING = "retrying"
    CONFLICT = "conflict"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PublishEvent:
    """
    Progress report from the publish worker.

    Attributes:
        kind: What happened
        attempt: Attempt number that failed (RETRYING only)
        wait_seconds: Backoff before the next attempt (RETRYING only)
        elapsed_seconds: Cumulative backoff so far
        error: Error text from git (RETRYING, CONFLICT, TIMEOUT)
    """

    kind: PublishEventKind
    attempt: int = 0
    wait_seconds: int = 0
    elapsed_seconds: int = 0
    error: str = ""

    @property
    def is_final(self) -> bool:
        return self.kind is not PublishEventKind.RETRYING

    @classmethod
    def success(cls) -> PublishEvent:
        return cls(kind=PublishEventKind.SUCCESS)

    @classmethod
    def retrying(cls, attempt: int, wait_seconds: int, elapsed_seconds: int, error: str) -> PublishEvent:
        return cls(
            kind=PublishEventKind.RETRYING,
            attempt=attempt,
            wait_seconds=wait_seconds,
            elapsed_seconds=elapsed_seconds,
            error=error,
        )

    @classmethod
    def conflict(cls, error: str) -> PublishEvent:
        return cls(kind=PublishEventKind.CONFLICT, error=error)

    @classmethod
    def timeout(cls, elapsed_seconds: int = 0, error: str = "") -> PublishEvent:
        return cls(kind=PublishEventKind.TIMEOUT, elapsed_seconds=elapsed_seconds, error=error)

    @classmethod
    def cancelled(cls) -> PublishEvent:
        return cls(kind=PublishEventKind.CANCELLED)


def push_with_retry(
    push: PushFn,
    events: "queue.Queue[PublishEvent]",
    cancel: threading.Event,
    config: PublishConfig = PublishConfig(),
    wait: Optional[WaitFn] = None,
) -> PublishEvent:
    """
    Retry ``push`` until it succeeds, conflicts, times out or is cancelled.

    Every event, including the final one, is put on ``events``.

    Args:
        push: Performs one push; raises ConflictError or TransientPublishError
        events: Queue receiving PublishEvents
        cancel: Set by the controller to stop retrying
        config: Backoff policy
        wait: ``wait(seconds) -> True if cancelled``; defaults to
            ``cancel.wait`` (tests pass a recorder instead of sleeping)

    Returns:
        The final event
    """
    wait = wait or cancel.wait
    attempt = 0
    elapsed = 0

    def finish(event: PublishEvent) -> PublishEvent:
        events.put(event)
        return event

    while True:
        if cancel.is_set():
            logger.info("Publish cancelled before attempt")
            return finish(PublishEvent.cancelled())

        attempt += 1
        try:
            push()
        except ConflictError as e:
            logger.warning(f"Push rejected, remote already has a submission: {e}")
            return finish(PublishEvent.conflict(str(e)))
        except TransientPublishError as e:
            if elapsed >= config.ceiling:
                logger.error(f"Giving up after {attempt} attempts ({elapsed}s): {e}")
                return finish(PublishEvent.timeout(elapsed_seconds=elapsed, error=str(e)))

            delay = config.delay_for(attempt)
            logger.warning(f"Push attempt {attempt} failed, retrying in {delay}s: {e}")
            events.put(PublishEvent.retrying(attempt, delay, elapsed, str(e)))

            if wait(delay):
                logger.info("Publish cancelled during backoff")
                return finish(PublishEvent.cancelled())
            elapsed += delay
        else:
            logger.info(f"Push succeeded on attempt {attempt}")
            return finish(PublishEvent.success())


@dataclass
class PublishHandle:
    """A running publish worker."""

    thread: threading.Thread
    cancel_event: threading.Event
    events: "queue.Queue[PublishEvent]"

    def cancel(self) -> None:
        self.cancel_event.set()

    def is_alive(self) -> bool:
        return self.thread.is_alive()

    def join(self, timeout: Optional[float] = None) -> None:
        self.thread.join(timeout)


def start_publish(
    push: PushFn,
    events: "queue.Queue[PublishEvent]",
    config: PublishConfig = PublishConfig(),
    wait: Optional[WaitFn] = None,
) -> PublishHandle:
    """
    Start ``push_with_retry`` on a daemon thread with a fresh cancel flag.

    Example:
        >>> events = queue.Queue()
        >>> handle = start_publish(repo.push, events)
        >>> events.get().kind
        <PublishEventKind.SUCCESS: 'success'>
    """
    cancel = threading.Event()
    thread = threading.Thread(
        target=push_with_retry,
        args=(push, events, cancel, config, wait),
        name="termquiz-publish",
        daemon=True,
    )
    thread.start()
    return PublishHandle(thread=thread, cancel_event=cancel, events=events)
