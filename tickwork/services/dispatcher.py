"""Background execution of a single recurring task."""
from __future__ import annotations

import enum
import logging
import threading
import time
from datetime import datetime
from typing import Callable, Optional

from tickwork.cadences import Cadence, Occurrence, utcnow
from tickwork.config import SchedulerConfig

logger = logging.getLogger(__name__)

Task = Callable[[], None]
Clock = Callable[[], datetime]

# Shortest sleep when the candidate equals ``now``; the candidate has to be
# strictly in the past before it counts as due.
_MIN_WAIT = 0.001
_GUARD_POLL = 0.05


class DispatcherState(str, enum.Enum):
    IDLE = "idle"
    WAITING = "waiting"
    EXECUTING = "executing"
    STOPPED = "stopped"


class _Wake(enum.Enum):
    CANCELLED = "cancelled"
    TRIGGERED = "triggered"
    DUE = "due"


class Dispatcher:
    """Drive one task through non-overlapping executions.

    A single control thread asks the cadence for the next occurrence, sleeps
    until it is due, a manual trigger arrives or the dispatcher is cancelled,
    and then hands the task to a worker thread.  The ``running`` lock is held
    for the whole execution so at most one invocation is ever in flight: an
    occurrence that becomes due meanwhile waits for the lock, while a manual
    trigger received meanwhile is folded into the running execution.
    """

    def __init__(
        self,
        cadence: Cadence,
        task: Task,
        *,
        max_runs: Optional[int] = None,
        name: str = "job",
        config: Optional[SchedulerConfig] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        if max_runs is not None and max_runs < 0:
            raise ValueError("max_runs must be zero or positive")
        self._cadence = cadence
        self._task = task
        self._max_runs = max_runs
        self._name = name
        self._config = config or SchedulerConfig()
        self._clock: Clock = clock or utcnow

        self._lock = threading.Lock()
        self._wakeup = threading.Condition(self._lock)
        self._running = threading.Lock()
        self._started = False
        self._cancelled = False
        self._stopped = False
        self._triggered = False
        self._dispatched = 0
        self._runs_completed = 0
        self._thread: Optional[threading.Thread] = None
        self._worker: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Public API
    @property
    def name(self) -> str:
        return self._name

    @property
    def cadence(self) -> Cadence:
        return self._cadence

    @property
    def max_runs(self) -> Optional[int]:
        return self._max_runs

    @property
    def runs_completed(self) -> int:
        with self._lock:
            return self._runs_completed

    @property
    def is_running(self) -> bool:
        """Whether an execution of the task is currently in flight."""

        return self._running.locked()

    @property
    def state(self) -> DispatcherState:
        with self._lock:
            if self._running.locked():
                return DispatcherState.EXECUTING
            if self._stopped or self._cancelled:
                return DispatcherState.STOPPED
            if not self._started:
                return DispatcherState.IDLE
            return DispatcherState.WAITING

    def start(self) -> None:
        """Launch the background loop; calling it again has no effect."""

        with self._lock:
            if self._started or self._cancelled:
                return
            self._started = True
            self._thread = threading.Thread(
                target=self._loop, name=f"tickwork-{self._name}", daemon=True
            )
            self._thread.start()
        logger.info("dispatcher %s started (%r)", self._name, self._cadence)

    def trigger_now(self) -> None:
        """Request an immediate run outside of the cadence."""

        with self._lock:
            if self._cancelled or self._stopped:
                return
            if self._running.locked():
                logger.debug("dispatcher %s: trigger folded into running execution", self._name)
                return
            self._triggered = True
            self._wakeup.notify_all()

    def cancel(self) -> None:
        """Stop scheduling new executions; a running one is left to finish."""

        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            self._wakeup.notify_all()
        logger.info("dispatcher %s cancelled", self._name)

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the loop and any in-flight execution to finish.

        Returns ``True`` when nothing is left running.
        """

        deadline = None if timeout is None else time.monotonic() + timeout
        thread = self._thread
        if thread is not None:
            thread.join(self._remaining(deadline))
            if thread.is_alive():
                return False
        worker = self._worker
        if worker is not None:
            worker.join(self._remaining(deadline))
            if worker.is_alive():
                return False
        return True

    # ------------------------------------------------------------------
    # Background loop
    def _loop(self) -> None:
        try:
            while not self._limit_reached():
                occurrence = self._cadence.next(self._clock())
                if not occurrence.has_more:
                    logger.info("dispatcher %s: no further occurrences", self._name)
                    break
                logger.debug(
                    "dispatcher %s: occurrence %d due at %s (in %s)",
                    self._name,
                    occurrence.index,
                    occurrence.at.isoformat(),
                    occurrence.wait,
                )
                wake = self._wait_for(occurrence)
                if wake is _Wake.CANCELLED or not self._dispatch(wake):
                    break
        finally:
            with self._lock:
                self._stopped = True
                self._wakeup.notify_all()
            logger.info(
                "dispatcher %s stopped after %d dispatched run(s)",
                self._name,
                self._dispatched,
            )

    def _limit_reached(self) -> bool:
        return self._max_runs is not None and self._dispatched >= self._max_runs

    def _wait_for(self, occurrence: Occurrence) -> _Wake:
        poll = self._config.poll_interval.total_seconds()
        with self._lock:
            while True:
                if self._cancelled:
                    return _Wake.CANCELLED
                if self._triggered:
                    return _Wake.TRIGGERED
                remaining = (occurrence.at - self._clock()).total_seconds()
                if remaining < 0:
                    return _Wake.DUE
                # sliced so that wall-clock adjustments are picked up
                self._wakeup.wait(min(max(remaining, _MIN_WAIT), poll))

    def _dispatch(self, wake: _Wake) -> bool:
        while not self._running.acquire(timeout=_GUARD_POLL):
            with self._lock:
                if self._cancelled:
                    return False
        with self._lock:
            if self._cancelled:
                self._running.release()
                return False
            self._triggered = False
            self._dispatched += 1
            run_number = self._dispatched
            self._worker = threading.Thread(
                target=self._execute,
                args=(run_number, wake),
                name=f"tickwork-{self._name}-run-{run_number}",
                daemon=True,
            )
            self._worker.start()
        return True

    def _execute(self, run_number: int, wake: _Wake) -> None:
        started = time.monotonic()
        try:
            self._task()
        except Exception:  # task failures never stop the schedule
            logger.exception("dispatcher %s: run %d failed", self._name, run_number)
        else:
            logger.info(
                "dispatcher %s: run %d (%s) finished in %.3fs",
                self._name,
                run_number,
                wake.value,
                time.monotonic() - started,
            )
        finally:
            with self._lock:
                self._runs_completed += 1
            self._running.release()

    @staticmethod
    def _remaining(deadline: Optional[float]) -> Optional[float]:
        if deadline is None:
            return None
        return max(0.0, deadline - time.monotonic())


__all__ = ["Dispatcher", "DispatcherState", "Task", "Clock"]
