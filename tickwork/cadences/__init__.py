"""Cadence engine: when does a recurring job fire next."""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from .base import Cadence, CadenceError, Occurrence, ensure_aware, utcnow
from .monthly import MonthlyCadence, YearlyCadence
from .periodic import (
    DAY,
    HOUR,
    MICROSECOND,
    MILLISECOND,
    MINUTE,
    NANOSECOND,
    SECOND,
    UNITS,
    WEEK,
    PeriodicCadence,
)

if TYPE_CHECKING:
    from tickwork.config import CadenceSpec

KINDS = ("periodic", "monthly", "yearly")


def build_cadence(spec: "CadenceSpec", *, now: Optional[datetime] = None) -> Cadence:
    """Instantiate the cadence variant described by ``spec``.

    ``now`` replaces a missing ``spec.start``; when both are absent the cadence
    anchors itself on the current time.
    """

    if spec.kind not in KINDS:
        raise CadenceError(
            f"unknown cadence kind: {spec.kind!r} (expected one of {', '.join(KINDS)})"
        )
    start = spec.start if spec.start is not None else now
    if spec.kind == "periodic":
        return PeriodicCadence(
            start,
            spec.end,
            amount=spec.amount,
            unit=spec.unit,
            skip_first=spec.skip_first,
        )
    if spec.kind == "monthly":
        return MonthlyCadence(
            start, spec.end, amount=spec.amount, skip_first=spec.skip_first
        )
    return YearlyCadence(
        start, spec.end, amount=spec.amount, skip_first=spec.skip_first
    )


__all__ = [
    "Cadence",
    "CadenceError",
    "Occurrence",
    "PeriodicCadence",
    "MonthlyCadence",
    "YearlyCadence",
    "build_cadence",
    "ensure_aware",
    "utcnow",
    "KINDS",
    "UNITS",
    "NANOSECOND",
    "MICROSECOND",
    "MILLISECOND",
    "SECOND",
    "MINUTE",
    "HOUR",
    "DAY",
    "WEEK",
]
