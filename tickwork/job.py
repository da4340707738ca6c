"""Fluent construction of recurring jobs.

Example::

    job = Job(backup).every(2).weeks().at(anchor).until(deadline).not_immediately()
    dispatcher = job.times(10).done()

``done()`` validates the cadence before any thread is started, so a zero
period raises :class:`tickwork.cadences.CadenceError` right here.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Optional

from tickwork.cadences import (
    DAY,
    HOUR,
    MICROSECOND,
    MILLISECOND,
    MINUTE,
    NANOSECOND,
    SECOND,
    WEEK,
    Cadence,
    build_cadence,
    utcnow,
)
from tickwork.config import CadenceSpec, SchedulerConfig
from tickwork.services.dispatcher import Clock, Dispatcher, Task


class Job:
    """Collect the pieces of a cadence and turn them into a dispatcher."""

    def __init__(
        self,
        task: Task,
        *,
        config: Optional[SchedulerConfig] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._task = task
        self._config = config
        self._clock = clock
        self._spec = CadenceSpec()
        self._max_runs: Optional[int] = None
        self._name = getattr(task, "__name__", "job")

    # ------------------------------------------------------------------
    # Execution count
    def times(self, count: int) -> "Job":
        if count < 0:
            raise ValueError("a job cannot run a negative number of times")
        self._max_runs = count
        return self

    def once(self) -> "Job":
        return self.times(1)

    def twice(self) -> "Job":
        return self.times(2)

    # ------------------------------------------------------------------
    # Period
    def every(self, amount: int = 1) -> "Job":
        self._spec.amount = amount
        return self

    def _periodic(self, unit: int) -> "Job":
        self._spec.kind = "periodic"
        self._spec.unit = unit
        return self

    def nanosecond(self) -> "Job":
        return self._periodic(NANOSECOND)

    def microsecond(self) -> "Job":
        return self._periodic(MICROSECOND)

    def millisecond(self) -> "Job":
        return self._periodic(MILLISECOND)

    def second(self) -> "Job":
        return self._periodic(SECOND)

    def minute(self) -> "Job":
        return self._periodic(MINUTE)

    def hour(self) -> "Job":
        return self._periodic(HOUR)

    def day(self) -> "Job":
        return self._periodic(DAY)

    def week(self) -> "Job":
        return self._periodic(WEEK)

    def month(self) -> "Job":
        self._spec.kind = "monthly"
        return self

    def year(self) -> "Job":
        self._spec.kind = "yearly"
        return self

    nanoseconds = nanosecond
    microseconds = microsecond
    milliseconds = millisecond
    seconds = second
    minutes = minute
    hours = hour
    days = day
    weeks = week
    months = month
    years = year

    # ------------------------------------------------------------------
    # Anchoring
    def not_immediately(self) -> "Job":
        """Do not fire on the anchor instant itself."""

        self._spec.skip_first = True
        return self

    def at(self, start: datetime) -> "Job":
        self._spec.start = start
        return self

    def after(self, delay: timedelta) -> "Job":
        return self.at(self._now() + delay)

    def until(self, end: datetime) -> "Job":
        self._spec.end = end
        return self

    def named(self, name: str) -> "Job":
        self._name = name
        return self

    # ------------------------------------------------------------------
    # Results
    def spec(self) -> CadenceSpec:
        s = self._spec
        return CadenceSpec(
            kind=s.kind,
            amount=s.amount,
            unit=s.unit,
            start=s.start,
            end=s.end,
            skip_first=s.skip_first,
        )

    def cadence(self) -> Cadence:
        return build_cadence(self.spec(), now=self._now())

    def build(self) -> Dispatcher:
        """Return a dispatcher that has not been started yet."""

        return Dispatcher(
            self.cadence(),
            self._task,
            max_runs=self._max_runs,
            name=self._name,
            config=self._config,
            clock=self._clock,
        )

    def done(self) -> Dispatcher:
        """Build the dispatcher and start it."""

        dispatcher = self.build()
        dispatcher.start()
        return dispatcher

    def _now(self) -> datetime:
        clock: Callable[[], datetime] = self._clock or utcnow
        return clock()
