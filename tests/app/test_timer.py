"""
Unit Tests for the countdown timer.
"""

import queue
from datetime import timedelta

from termquiz.app.timer import QuizTimer, TimerEventKind
from termquiz.config import TimerConfig


def _kinds(events):
    return [e.kind for e in events]


class TestStep:

    def test_step_when_time_left_then_tick_with_remaining(self, sample_quiz):
        end = sample_quiz.frontmatter.end
        timer = QuizTimer(end, queue.Queue())

        events = timer.step(end - timedelta(minutes=10))

        assert _kinds(events) == [TimerEventKind.TICK]
        assert events[0].remaining_seconds == 600

    def test_warning_fires_once_before_tick(self, sample_quiz):
        end = sample_quiz.frontmatter.end
        events = queue.Queue()
        timer = QuizTimer(end, events)

        first = timer.step(end - timedelta(seconds=120))
        second = timer.step(end - timedelta(seconds=119))

        assert _kinds(first) == [TimerEventKind.TWO_MINUTE_WARNING, TimerEventKind.TICK]
        assert _kinds(second) == [TimerEventKind.TICK]
        assert events.qsize() == 3

    def test_expiry_posts_once_and_stops(self, sample_quiz):
        end = sample_quiz.frontmatter.end
        timer = QuizTimer(end, queue.Queue())

        assert _kinds(timer.step(end)) == [TimerEventKind.TIME_EXPIRED]
        assert timer.expired is True
        assert timer.step(end + timedelta(seconds=5)) == []

    def test_start_after_end_then_expires_without_warning(self, sample_quiz):
        end = sample_quiz.frontmatter.end
        timer = QuizTimer(end, queue.Queue())

        assert _kinds(timer.step(end + timedelta(hours=1))) == [TimerEventKind.TIME_EXPIRED]


def test_thread_posts_until_expired(sample_quiz):
    end = sample_quiz.frontmatter.end
    ticks = iter([end - timedelta(seconds=2), end - timedelta(seconds=1), end])
    events = queue.Queue()
    timer = QuizTimer(end, events, TimerConfig(tick_seconds=0.01), clock=lambda: next(ticks))

    timer.start()
    posted = []
    while TimerEventKind.TIME_EXPIRED not in posted:
        posted.append(events.get(timeout=5).kind)
    timer.stop(timeout=5)

    assert posted == [
        TimerEventKind.TWO_MINUTE_WARNING,
        TimerEventKind.TICK,
        TimerEventKind.TICK,
        TimerEventKind.TIME_EXPIRED,
    ]
    assert timer.expired
