"""Background scheduling primitives."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Mapping, Optional

from tickwork.cadences import Cadence
from tickwork.config import SchedulerConfig
from tickwork.services.dispatcher import Dispatcher, DispatcherState, Task

logger = logging.getLogger(__name__)

_IDLE_CHECK_SECONDS = 0.5


@dataclass(slots=True)
class ScheduledTask:
    """Represents a background task with its cadence."""

    name: str
    cadence: Cadence
    task: Task
    max_runs: Optional[int] = None


class Scheduler:
    """Own a set of named :class:`Dispatcher` instances.

    Each registered task gets its own dispatcher thread; the scheduler only
    starts, triggers and stops them as a group.
    """

    def __init__(
        self,
        config: SchedulerConfig,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._config = config
        self._clock = clock
        self._dispatchers: Dict[str, Dispatcher] = {}
        self._lock = threading.Lock()
        self._started = False

    def add_task(self, scheduled_task: ScheduledTask) -> Dispatcher:
        """Register a new recurring task."""

        dispatcher = Dispatcher(
            scheduled_task.cadence,
            scheduled_task.task,
            max_runs=scheduled_task.max_runs,
            name=scheduled_task.name,
            config=self._config,
            clock=self._clock,
        )
        with self._lock:
            if scheduled_task.name in self._dispatchers:
                raise ValueError(f"duplicate task name: {scheduled_task.name}")
            self._dispatchers[scheduled_task.name] = dispatcher
            started = self._started
        if started:
            dispatcher.start()
        return dispatcher

    def dispatchers(self) -> Mapping[str, Dispatcher]:
        with self._lock:
            return dict(self._dispatchers)

    def start(self) -> None:
        """Start every registered dispatcher."""

        with self._lock:
            self._started = True
            dispatchers = list(self._dispatchers.values())
        for dispatcher in dispatchers:
            dispatcher.start()

    def trigger(self, name: str) -> None:
        self._get(name).trigger_now()

    def cancel(self, name: str) -> None:
        self._get(name).cancel()

    def stop(self) -> None:
        """Cancel all dispatchers and wait for in-flight runs to finish."""

        dispatchers = list(self.dispatchers().values())
        for dispatcher in dispatchers:
            dispatcher.cancel()
        timeout = self._config.join_timeout.total_seconds()
        for dispatcher in dispatchers:
            if not dispatcher.join(timeout):
                logger.warning(
                    "task %s still running after %.1fs", dispatcher.name, timeout
                )

    def run_forever(self, stop_event: Optional[threading.Event] = None) -> None:
        """Start the scheduler loop and block until it winds down.

        Returns once every dispatcher has stopped on its own or ``stop_event``
        is set; in both cases the remaining dispatchers are cancelled.
        """

        stop_event = stop_event or threading.Event()
        self.start()
        try:
            while not stop_event.wait(_IDLE_CHECK_SECONDS):
                if all(
                    dispatcher.state is DispatcherState.STOPPED
                    for dispatcher in self.dispatchers().values()
                ):
                    break
        finally:
            self.stop()

    def _get(self, name: str) -> Dispatcher:
        with self._lock:
            try:
                return self._dispatchers[name]
            except KeyError:
                raise KeyError(f"unknown task: {name}") from None
