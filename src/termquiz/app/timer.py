"""
Module: app.timer

Purpose:
    Background countdown to the quiz end time. The thread only posts
    TimerEvents on a queue; it never touches session or app state.

Key Classes:
    - TimerEvent / TimerEventKind: tick, two-minute warning, time expired
    - QuizTimer: Daemon thread producing the events

Used By:
    - app.controller
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from termquiz.config import TimerConfig
from termquiz.core.utils.timeutil import utc_now

logger = logging.getLogger(__name__)


class TimerEventKind(str, Enum):
    TICK = "tick"
    TWO_MINUTE_WARNING = "two_minute_warning"
    TIME_EXPIRED = "time_expired"


@dataclass(frozen=True)
class TimerEvent:
    kind: TimerEventKind
    remaining_seconds: int = 0


class QuizTimer:
    """
    Countdown thread.

    Each tick posts TICK with the remaining whole seconds; the first tick at
    or under ``warning_seconds`` (but above zero) also posts one
    TWO_MINUTE_WARNING; reaching zero posts TIME_EXPIRED and ends the
    thread.

    Args:
        end: Quiz end time (timezone-aware)
        events: Queue receiving TimerEvents
        config: Tick interval and warning threshold
        clock: Source of "now"

    Example:
        >>> events = queue.Queue()
        >>> timer = QuizTimer(quiz.frontmatter.end, events)
        >>> timer.start()
        >>> events.get()
        TimerEvent(kind=<TimerEventKind.TICK: 'tick'>, remaining_seconds=3599)
    """

    def __init__(
        self,
        end: datetime,
        events: "queue.Queue[TimerEvent]",
        config: TimerConfig = TimerConfig(),
        clock: Callable[[], datetime] = utc_now,
    ):
        self.end = end
        self.events = events
        self.config = config
        self.clock = clock
        self._warned = False
        self._expired = False
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def expired(self) -> bool:
        return self._expired

    def step(self, now: Optional[datetime] = None) -> List[TimerEvent]:
        """
        Compute and post the events for one tick.

        Returns:
            The events posted, in order
        """
        if self._expired:
            return []
        now = now or self.clock()
        remaining = int((self.end - now).total_seconds())

        posted: List[TimerEvent] = []
        if remaining <= 0:
            self._expired = True
            posted.append(TimerEvent(TimerEventKind.TIME_EXPIRED, 0))
        else:
            if remaining <= self.config.warning_seconds and not self._warned:
                self._warned = True
                posted.append(TimerEvent(TimerEventKind.TWO_MINUTE_WARNING, remaining))
            posted.append(TimerEvent(TimerEventKind.TICK, remaining))

        for event in posted:
            self.events.put(event)
        return posted

    def _run(self) -> None:
        while not self._stop.is_set():
            self.step()
            if self._expired:
                logger.info("Quiz time expired")
                return
            self._stop.wait(self.config.tick_seconds)

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("timer already started")
        self._thread = threading.Thread(target=self._run, name="termquiz-timer", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
