"""Configuration schema for tickwork.

This module defines dataclasses that describe a set of recurring jobs and the
timing knobs of the scheduler that drives them.  The YAML loader in
:mod:`tickwork.config_loader` and the fluent :class:`tickwork.job.Job` builder
both produce these structures.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, Sequence

from tickwork.cadences.periodic import SECOND


@dataclass(slots=True)
class CadenceSpec:
    """Validated-on-build description of a cadence.

    ``unit`` is only meaningful for ``kind="periodic"`` and is expressed in
    nanoseconds (see :mod:`tickwork.cadences.periodic`).
    """

    kind: str = "periodic"
    amount: int = 1
    unit: int = SECOND
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    skip_first: bool = False


@dataclass(slots=True)
class JobConfig:
    """A named job whose task is referenced as ``"module:attribute"``."""

    name: str
    task: str
    cadence: CadenceSpec
    max_runs: Optional[int] = None


@dataclass(slots=True)
class SchedulerConfig:
    """Timing knobs for the background dispatchers."""

    poll_interval: timedelta = timedelta(seconds=30)
    join_timeout: timedelta = timedelta(seconds=5)


@dataclass(slots=True)
class TickworkConfig:
    """Top-level configuration bundle."""

    jobs: Sequence[JobConfig] = field(default_factory=tuple)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    log_level: str = "INFO"
