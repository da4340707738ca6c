"""Fixed-length cadences measured in nanoseconds up to weeks."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from .base import Cadence, CadenceError

NANOSECOND = 1
MICROSECOND = 1_000 * NANOSECOND
MILLISECOND = 1_000 * MICROSECOND
SECOND = 1_000 * MILLISECOND
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE
DAY = 24 * HOUR
WEEK = 7 * DAY

UNITS: Dict[str, int] = {
    "nanosecond": NANOSECOND,
    "microsecond": MICROSECOND,
    "millisecond": MILLISECOND,
    "second": SECOND,
    "minute": MINUTE,
    "hour": HOUR,
    "day": DAY,
    "week": WEEK,
}


class PeriodicCadence(Cadence):
    """Every ``amount`` × ``unit`` nanoseconds, anchored at ``start``.

    Arithmetic is done on UTC instants so daylight saving transitions do not
    stretch or shrink a period.  Candidates are floored to the microsecond
    resolution of :class:`datetime.datetime`.
    """

    def __init__(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        *,
        amount: int = 1,
        unit: int = SECOND,
        skip_first: bool = False,
    ) -> None:
        if amount <= 0 or unit <= 0:
            raise CadenceError(f"{amount} x {unit}ns is not a valid period")
        super().__init__(start, end, skip_first=skip_first)
        self._amount = amount
        self._unit = unit
        self._step_ns = amount * unit
        self._origin = self.start.astimezone(timezone.utc)

    @property
    def amount(self) -> int:
        return self._amount

    @property
    def unit(self) -> int:
        return self._unit

    @property
    def period(self) -> timedelta:
        return timedelta(microseconds=self._step_ns // MICROSECOND)

    def instant_at(self, index: int) -> datetime:
        offset_us = (index * self._step_ns) // MICROSECOND
        return self._origin + timedelta(microseconds=offset_us)

    def _leap(self, now: datetime, index: int) -> int:
        elapsed = now - self._origin
        elapsed_ns = (
            (elapsed.days * 86_400 + elapsed.seconds) * 1_000_000 + elapsed.microseconds
        ) * MICROSECOND
        if elapsed_ns <= 0:
            return index
        # smallest index whose candidate is not before ``now``
        first_due = -(-elapsed_ns // self._step_ns)
        return max(index, first_due - 1)
