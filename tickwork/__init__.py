"""tickwork: in-process recurring jobs."""

from .cadences import Cadence, CadenceError, Occurrence, build_cadence
from .cli import main as cli_main
from .config_loader import load_config
from .job import Job
from .services import Dispatcher, DispatcherState, Scheduler, ScheduledTask

__all__ = [
    "Cadence",
    "CadenceError",
    "Dispatcher",
    "DispatcherState",
    "Job",
    "Occurrence",
    "Scheduler",
    "ScheduledTask",
    "build_cadence",
    "cli_main",
    "load_config",
    "cadences",
    "config",
    "services",
]
