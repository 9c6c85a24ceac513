"""
Module: config

Purpose:
    Immutable configuration for the publish retry loop and the quiz timer,
    validated on construction.

Key Classes:
    - PublishConfig: Backoff delays and the cumulative retry ceiling
    - TimerConfig: Tick interval and warning threshold

Dependencies:
    - dataclasses (std)

Used By:
    - submission.publisher, submission.pipeline
    - app.timer, app.controller
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PublishConfig:
    """
    Push retry policy (immutable).

    Attributes:
        initial_delay: Seconds to wait after the first failed push
        max_delay: Upper bound on any single wait; delays double up to it
        ceiling: Cumulative seconds after which publishing gives up and
            falls back to the local copy

    Example:
        >>> config = PublishConfig()
        >>> [config.delay_for(n) for n in range(1, 7)]
        [2, 4, 8, 16, 30, 30]
    """

    initial_delay: int = 2
    max_delay: int = 30
    ceiling: int = 600

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if self.initial_delay <= 0:
            raise ValueError(f"initial_delay must be positive: {self.initial_delay}")
        if self.max_delay < self.initial_delay:
            raise ValueError(
                f"max_delay ({self.max_delay}) must be >= initial_delay ({self.initial_delay})"
            )
        if self.ceiling <= 0:
            raise ValueError(f"ceiling must be positive: {self.ceiling}")

    def delay_for(self, attempt: int) -> int:
        """Wait before retrying after failed attempt number ``attempt`` (1-based)."""
        if attempt < 1:
            raise ValueError(f"attempt must be >= 1: {attempt}")
        delay = self.initial_delay * (2 ** (attempt - 1))
        return min(delay, self.max_delay)


@dataclass(frozen=True)
class TimerConfig:
    """
    Quiz countdown settings (immutable).

    Attributes:
        tick_seconds: Interval between countdown ticks
        warning_seconds: Remaining time at which the one-off warning fires
    """

    tick_seconds: float = 1.0
    warning_seconds: int = 120

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if self.tick_seconds <= 0:
            raise ValueError(f"tick_seconds must be positive: {self.tick_seconds}")
        if self.warning_seconds < 0:
            raise ValueError(f"warning_seconds must be non-negative: {self.warning_seconds}")
