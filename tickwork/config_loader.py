"""Utilities to load :mod:`tickwork.config` structures from YAML files."""
from __future__ import annotations

import datetime as _dt
import re
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

import yaml

from .cadences import (
    DAY,
    HOUR,
    MICROSECOND,
    MILLISECOND,
    MINUTE,
    NANOSECOND,
    SECOND,
    UNITS,
    WEEK,
)
from .cadences.base import ensure_aware
from .config import CadenceSpec, JobConfig, SchedulerConfig, TickworkConfig

_DURATION_UNITS = {
    "ns": NANOSECOND,
    "us": MICROSECOND,
    "ms": MILLISECOND,
    "s": SECOND,
    "m": MINUTE,
    "h": HOUR,
    "d": DAY,
    "w": WEEK,
}

_UNIT_ALIASES = {
    "ns": "nanosecond",
    "us": "microsecond",
    "ms": "millisecond",
    "s": "second",
    "sec": "second",
    "m": "minute",
    "min": "minute",
    "h": "hour",
    "d": "day",
    "w": "week",
    "mo": "month",
    "y": "year",
}

_CALENDAR_KINDS = {"month": "monthly", "year": "yearly"}

_QUANTITY_PATTERN = re.compile(r"^\s*(?P<amount>\d+(?:\.\d+)?)?\s*(?P<unit>[A-Za-z]+)\s*$")


def load_config(path: Path) -> TickworkConfig:
    """Load a configuration file into :class:`TickworkConfig`.

    The loader accepts human friendly values such as ``"30s"`` or ``"5m"`` for
    durations and ``"2 weeks"`` or ``{amount: 3, unit: months}`` for job
    cadences.  Fields omitted in the YAML file fall back to the defaults
    declared in :mod:`tickwork.config`.
    """

    raw = _load_yaml(path)

    scheduler_section = raw.get("scheduler") or {}
    scheduler = SchedulerConfig(
        poll_interval=_parse_duration(scheduler_section.get("poll_interval", "30s")),
        join_timeout=_parse_duration(scheduler_section.get("join_timeout", "5s")),
    )

    jobs = []
    seen = set()
    for position, item in enumerate(raw.get("jobs") or []):
        if not isinstance(item, Mapping):
            raise ValueError(f"job #{position} must be a mapping")
        name = str(item.get("name") or f"job-{position}")
        if name in seen:
            raise ValueError(f"duplicate job name: {name}")
        seen.add(name)
        try:
            jobs.append(_parse_job(name, item))
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"job {name!r}: {exc}") from exc

    return TickworkConfig(
        jobs=tuple(jobs),
        scheduler=scheduler,
        log_level=str(raw.get("log_level", "INFO")).upper(),
    )


def _load_yaml(path: Path) -> Mapping[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if not isinstance(data, Mapping):
        raise ValueError("configuration root must be a mapping")
    return data


def _parse_job(name: str, item: Mapping[str, Any]) -> JobConfig:
    task = item.get("task")
    if not isinstance(task, str) or not task:
        raise ValueError("missing task reference")
    kind, amount, unit = _parse_every(item.get("every", "1s"))
    cadence = CadenceSpec(
        kind=kind,
        amount=amount,
        unit=unit,
        start=_parse_instant(item.get("start")),
        end=_parse_instant(item.get("end")),
        skip_first=bool(item.get("not_immediately", False)),
    )
    max_runs = item.get("max_runs")
    if max_runs is not None:
        max_runs = int(max_runs)
        if max_runs < 0:
            raise ValueError("max_runs must be zero or positive")
    return JobConfig(name=name, task=task, cadence=cadence, max_runs=max_runs)


def _parse_every(value: Any) -> Tuple[str, int, int]:
    """Return ``(kind, amount, unit)`` for an ``every`` entry."""

    if isinstance(value, Mapping):
        amount = int(value.get("amount", 1))
        unit_name = str(value.get("unit", "second"))
    elif isinstance(value, (int, float)):
        amount, unit_name = int(value), "second"
    elif isinstance(value, str):
        match = _QUANTITY_PATTERN.match(value)
        if match is None:
            raise ValueError(f"unsupported cadence: {value!r}")
        amount = int(match.group("amount") or 1)
        unit_name = match.group("unit")
    else:
        raise ValueError(f"unsupported cadence: {value!r}")

    unit_name = _normalise_unit(unit_name)
    if unit_name in _CALENDAR_KINDS:
        return _CALENDAR_KINDS[unit_name], amount, UNITS["second"]
    return "periodic", amount, UNITS[unit_name]


def _normalise_unit(name: str) -> str:
    lowered = name.strip().lower()
    if lowered not in _UNIT_ALIASES and lowered.endswith("s"):
        lowered = lowered[:-1]
    lowered = _UNIT_ALIASES.get(lowered, lowered)
    if lowered not in UNITS and lowered not in _CALENDAR_KINDS:
        raise ValueError(f"unknown cadence unit: {name}")
    return lowered


def _parse_instant(value: Any) -> Optional[_dt.datetime]:
    if value is None:
        return None
    if isinstance(value, _dt.datetime):
        return ensure_aware(value)
    if isinstance(value, _dt.date):
        return _dt.datetime(value.year, value.month, value.day, tzinfo=_dt.timezone.utc)
    if not isinstance(value, str):
        raise ValueError(f"unsupported instant value: {value!r}")
    try:
        parsed = _dt.datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError(f"invalid ISO-8601 instant: {value!r}") from exc
    return ensure_aware(parsed)


def _parse_duration(value: Any) -> _dt.timedelta:
    if isinstance(value, _dt.timedelta):
        return value
    if isinstance(value, (int, float)):
        return _dt.timedelta(seconds=float(value))
    if not isinstance(value, str):
        raise ValueError(f"unsupported duration value: {value!r}")
    value = value.strip()
    if value.isdigit():
        return _dt.timedelta(seconds=int(value))
    match = _QUANTITY_PATTERN.match(value)
    if match is None or match.group("amount") is None:
        raise ValueError(f"invalid duration: {value}")
    unit = match.group("unit").lower()
    if unit not in _DURATION_UNITS:
        raise ValueError(f"unknown duration unit: {value}")
    amount = float(match.group("amount"))
    # unit sizes are nanoseconds; timedelta rounds to its microsecond resolution
    return _dt.timedelta(microseconds=amount * _DURATION_UNITS[unit] / MICROSECOND)
