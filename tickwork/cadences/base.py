"""Occurrence calculation shared by every cadence variant."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

logger = logging.getLogger(__name__)


class CadenceError(ValueError):
    """Raised when a cadence is configured with an unusable step."""


@dataclass(slots=True, frozen=True)
class Occurrence:
    """Answer of :meth:`Cadence.next` for a given instant.

    ``wait`` is ``at - now`` and is only zero or negative for the first,
    unprimed evaluation of an anchor that is already due.
    """

    has_more: bool
    wait: timedelta
    index: int
    at: datetime


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Cadence(ABC):
    """Stateful calculator turning ``now`` into the next fire instant.

    Candidates are always derived from ``start`` and the occurrence index
    (``start`` advanced by ``index`` whole steps), so clamped calendar dates do
    not shift the anchor for later occurrences.  The index only moves forward
    while catching up with instants that are already in the past.
    """

    def __init__(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        *,
        skip_first: bool = False,
    ) -> None:
        self._start = ensure_aware(start) if start is not None else utcnow()
        self._end = ensure_aware(end) if end is not None else None
        self._skip_first = skip_first
        self._index = 1 if skip_first else 0
        self._primed = False

    # ------------------------------------------------------------------
    @property
    def start(self) -> datetime:
        return self._start

    @property
    def end(self) -> Optional[datetime]:
        return self._end

    @property
    def index(self) -> int:
        return self._index

    @property
    def primed(self) -> bool:
        return self._primed

    @property
    def skip_first(self) -> bool:
        return self._skip_first

    # ------------------------------------------------------------------
    @abstractmethod
    def instant_at(self, index: int) -> datetime:
        """Return ``start`` advanced by ``index`` steps."""

    def _leap(self, now: datetime, index: int) -> int:
        """Return an index whose candidate is still before ``now``.

        Variants override this to skip long idle gaps without stepping through
        every missed occurrence; the default never jumps.
        """

        return index

    # ------------------------------------------------------------------
    def next(self, now: Optional[datetime] = None) -> Occurrence:
        """Advance past missed occurrences and report the upcoming one."""

        now = ensure_aware(now) if now is not None else utcnow()
        candidate = self.instant_at(self._index)
        if candidate < now and self._primed:
            leaped = self._leap(now, self._index)
            if leaped > self._index:
                logger.debug(
                    "catching up from occurrence %d to %d", self._index, leaped
                )
                self._index = leaped
                candidate = self.instant_at(self._index)
        while candidate < now:
            if not self._primed:
                break
            self._index += 1
            candidate = self.instant_at(self._index)
        self._primed = True
        return Occurrence(
            has_more=self._within_end(candidate),
            wait=candidate - now,
            index=self._index,
            at=candidate,
        )

    def preview(self, now: Optional[datetime] = None, count: int = 5) -> List[datetime]:
        """Return up to ``count`` upcoming instants without touching state."""

        now = ensure_aware(now) if now is not None else utcnow()
        instants: List[datetime] = []
        index = self._index
        candidate = self.instant_at(index)
        if candidate < now:
            if not self._primed:
                # the overdue first occurrence is reported once, then caught up
                if count <= 0 or not self._within_end(candidate):
                    return instants
                instants.append(candidate)
            index = max(index, self._leap(now, index))
            candidate = self.instant_at(index)
            while candidate < now:
                index += 1
                candidate = self.instant_at(index)
        while len(instants) < count and self._within_end(candidate):
            instants.append(candidate)
            index += 1
            candidate = self.instant_at(index)
        return instants

    def _within_end(self, candidate: datetime) -> bool:
        return self._end is None or candidate < self._end

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(start={self._start.isoformat()}, "
            f"end={self._end.isoformat() if self._end else None}, "
            f"index={self._index}, primed={self._primed})"
        )
