"""Service orchestration helpers."""

from .dispatcher import Dispatcher, DispatcherState
from .scheduler import Scheduler, ScheduledTask
from .task_loader import load_task

__all__ = ["Dispatcher", "DispatcherState", "Scheduler", "ScheduledTask", "load_task"]
