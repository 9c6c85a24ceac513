"""
Unit Tests for the publish retry loop.

No test sleeps: ``wait`` is replaced by a recorder.
"""

import queue
import threading

import pytest

from termquiz.config import PublishConfig
from termquiz.core.errors import ConflictError, TransientPublishError
from termquiz.submission.publisher import (
    PublishEvent,
    PublishEventKind,
    push_with_retry,
    start_publish,
)


class ScriptedPush:
    """Push callable that raises the queued outcomes in order, then succeeds."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.outcomes:
            outcome = self.outcomes.pop(0)
            if outcome is not None:
                raise outcome


class RecordingWait:
    def __init__(self, cancel_on_call=None):
        self.waits = []
        self.cancel_on_call = cancel_on_call

    def __call__(self, seconds):
        self.waits.append(seconds)
        return self.cancel_on_call is not None and len(self.waits) >= self.cancel_on_call


def _drain(events: queue.Queue):
    items = []
    while not events.empty():
        items.append(events.get_nowait())
    return items


@pytest.fixture
def events():
    return queue.Queue()


class TestPushWithRetry:

    def test_retry_when_two_failures_then_success_after_2_and_4_seconds(self, events):
        push = ScriptedPush(TransientPublishError("timeout"), TransientPublishError("timeout"))
        wait = RecordingWait()

        final = push_with_retry(push, events, threading.Event(), PublishConfig(), wait)

        assert final.kind is PublishEventKind.SUCCESS
        assert wait.waits == [2, 4]
        assert push.calls == 3
        posted = _drain(events)
        assert [e.kind for e in posted] == [
            PublishEventKind.RETRYING,
            PublishEventKind.RETRYING,
            PublishEventKind.SUCCESS,
        ]
        assert (posted[1].attempt, posted[1].wait_seconds, posted[1].elapsed_seconds) == (2, 4, 2)

    def test_conflict_then_no_retry(self, events):
        push = ScriptedPush(ConflictError("! [rejected] main -> main (fetch first)"))
        wait = RecordingWait()

        final = push_with_retry(push, events, threading.Event(), PublishConfig(), wait)

        assert final.kind is PublishEventKind.CONFLICT
        assert "rejected" in final.error
        assert wait.waits == []
        assert _drain(events) == [final]

    def test_ceiling_reached_then_timeout(self, events):
        push = ScriptedPush(*[TransientPublishError("down")] * 10)
        wait = RecordingWait()
        config = PublishConfig(initial_delay=2, max_delay=4, ceiling=10)

        final = push_with_retry(push, events, threading.Event(), config, wait)

        assert final.kind is PublishEventKind.TIMEOUT
        assert wait.waits == [2, 4, 4]
        assert final.elapsed_seconds == 10
        assert final.error == "down"

    def test_cancel_set_before_attempt_then_no_push(self, events):
        cancel = threading.Event()
        cancel.set()
        push = ScriptedPush()

        final = push_with_retry(push, events, cancel, PublishConfig(), RecordingWait())

        assert final.kind is PublishEventKind.CANCELLED
        assert push.calls == 0

    def test_cancel_during_wait_then_cancelled(self, events):
        push = ScriptedPush(TransientPublishError("a"), TransientPublishError("b"))
        wait = RecordingWait(cancel_on_call=1)

        final = push_with_retry(push, events, threading.Event(), PublishConfig(), wait)

        assert final.kind is PublishEventKind.CANCELLED
        assert push.calls == 1
        assert [e.kind for e in _drain(events)] == [
            PublishEventKind.RETRYING,
            PublishEventKind.CANCELLED,
        ]


class TestPublishEvent:

    def test_only_retrying_is_not_final(self):
        assert PublishEvent.retrying(1, 2, 0, "x").is_final is False
        assert PublishEvent.success().is_final is True
        assert PublishEvent.timeout().is_final is True


def test_start_publish_runs_on_worker_thread(events):
    caller = threading.current_thread()
    seen = []

    def push():
        seen.append(threading.current_thread())

    handle = start_publish(push, events)
    handle.join(timeout=5)

    assert not handle.is_alive()
    assert seen and seen[0] is not caller
    assert events.get(timeout=1).kind is PublishEventKind.SUCCESS
