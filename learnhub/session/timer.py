"""
Countdowns for assignment deadlines and running test attempts.

A countdown only reports; deciding what expiry means is up to whoever
listens to its ticks.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Generic, TypeVar

from learnhub.config import URGENT_THRESHOLD_SECONDS
from learnhub.session.scheduler import Handle, Scheduler
from learnhub.utils.time_utils import parse_iso_timestamp, seconds_until, utc_now

log = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60
SECONDS_PER_HOUR = 60 * 60


@dataclass(frozen=True)
class CountdownState:
    days: int
    hours: int
    minutes: int
    seconds: int
    is_overdue: bool
    is_urgent: bool
    total_seconds_remaining: int
    formatted_time: str


@dataclass(frozen=True)
class QuizCountdownState:
    days: int
    hours: int
    minutes: int
    is_expired: bool


OVERDUE = CountdownState(0, 0, 0, 0, True, False, 0, "Overdue")
QUIZ_EXPIRED = QuizCountdownState(0, 0, 0, True)


def split_seconds(total: int) -> tuple[int, int, int, int]:
    """Split seconds into (days, hours, minutes, seconds)."""
    days, rest = divmod(total, SECONDS_PER_DAY)
    hours, rest = divmod(rest, SECONDS_PER_HOUR)
    minutes, seconds = divmod(rest, 60)
    return days, hours, minutes, seconds


def format_remaining(days: int, hours: int, minutes: int, seconds: int) -> str:
    """Two most significant units: ``2d 3h``, ``3h 15m`` or ``15m 9s``."""
    if days > 0:
        return f"{days}d {hours}h"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m {seconds}s"


def countdown_state(remaining: int) -> CountdownState:
    """Display state for a number of remaining seconds."""
    if remaining <= 0:
        return OVERDUE
    days, hours, minutes, seconds = split_seconds(remaining)
    return CountdownState(
        days=days,
        hours=hours,
        minutes=minutes,
        seconds=seconds,
        is_overdue=False,
        is_urgent=remaining < URGENT_THRESHOLD_SECONDS,
        total_seconds_remaining=remaining,
        formatted_time=format_remaining(days, hours, minutes, seconds),
    )


def quiz_countdown_state(remaining: int) -> QuizCountdownState:
    if remaining <= 0:
        return QUIZ_EXPIRED
    days, hours, minutes, _ = split_seconds(remaining)
    return QuizCountdownState(days, hours, minutes, False)


StateT = TypeVar("StateT", CountdownState, QuizCountdownState)


class _Countdown(Generic[StateT]):
    interval: float = 1.0

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        deadline: datetime | str | None = None,
        remaining_seconds: int | None = None,
        on_tick: Callable[[StateT], None] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Args:
            scheduler: Drives the ticks.
            deadline: Absolute deadline, aware datetime or ISO string.
            remaining_seconds: Pre-computed remaining time; wins over
                ``deadline`` when non-negative. Negative means overdue.
            on_tick: Called with the new state after every tick.
            clock: Wall clock used to resolve ``deadline``.
        """
        if remaining_seconds is not None and (remaining_seconds >= 0 or deadline is None):
            remaining = int(remaining_seconds)
        elif deadline is not None:
            parsed = parse_iso_timestamp(deadline)
            if parsed is None:
                raise ValueError(f"Invalid deadline: {deadline!r}")
            remaining = seconds_until(parsed, clock())
        else:
            raise ValueError("Either deadline or remaining_seconds is required")

        self._scheduler = scheduler
        self._on_tick = on_tick
        self._remaining = max(0, remaining)
        self._ends_at: float | None = None
        self._task: Handle | None = None
        self._state: StateT = self._snapshot(self._remaining)

    def _snapshot(self, remaining: int) -> StateT:
        raise NotImplementedError

    @property
    def state(self) -> StateT:
        return self._state

    @property
    def remaining_seconds(self) -> int:
        return self._remaining

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.cancelled

    @property
    def expired(self) -> bool:
        return self._remaining <= 0

    def start(self) -> StateT:
        """Start ticking. An already overdue countdown stays frozen and never ticks."""
        if self.running or self.expired:
            return self._state
        self._ends_at = self._scheduler.now() + self._remaining
        self._task = self._scheduler.call_every(self.interval, self._tick)
        return self._state

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def _tick(self) -> None:
        if self.expired:
            self.stop()
            return
        assert self._ends_at is not None
        remaining = math.ceil(self._ends_at - self._scheduler.now())
        self._remaining = max(0, remaining)
        self._state = self._snapshot(self._remaining)
        if self.expired:
            log.debug("Countdown reached zero, freezing")
            self.stop()
        if self._on_tick is not None:
            self._on_tick(self._state)


class Countdown(_Countdown[CountdownState]):
    """Second-resolution countdown with overdue and urgency flags."""

    interval = 1.0

    def _snapshot(self, remaining: int) -> CountdownState:
        return countdown_state(remaining)


class QuizCountdown(_Countdown[QuizCountdownState]):
    """Minute-resolution countdown used by quiz and deadline badges."""

    interval = 60.0

    def _snapshot(self, remaining: int) -> QuizCountdownState:
        return quiz_countdown_state(remaining)
