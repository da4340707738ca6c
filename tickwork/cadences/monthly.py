"""Calendar cadences whose step length varies with the month."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from dateutil.relativedelta import relativedelta

from .base import Cadence, CadenceError


class MonthlyCadence(Cadence):
    """Every ``amount`` calendar months on the anchor's day of month.

    Days missing from the target month clamp to its last day (Jan 31 becomes
    Feb 28 or 29) and never roll over into the following month.  Arithmetic
    uses the wall clock of the anchor's timezone.
    """

    months_per_step = 1
    label = "month"

    def __init__(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        *,
        amount: int = 1,
        skip_first: bool = False,
    ) -> None:
        if amount <= 0:
            raise CadenceError(f"{amount} {self.label}s is not a valid period")
        super().__init__(start, end, skip_first=skip_first)
        self._amount = amount

    @property
    def amount(self) -> int:
        return self._amount

    def instant_at(self, index: int) -> datetime:
        return self.start + relativedelta(
            months=index * self._amount * self.months_per_step
        )

    def _leap(self, now: datetime, index: int) -> int:
        local_now = now.astimezone(self.start.tzinfo)
        months = (local_now.year - self.start.year) * 12 + (
            local_now.month - self.start.month
        )
        # stepping ``months - 1`` lands in the month before ``now``
        step = self._amount * self.months_per_step
        if months < 1:
            return index
        return max(index, (months - 1) // step)


class YearlyCadence(MonthlyCadence):
    """Every ``amount`` calendar years; a Feb 29 anchor clamps to Feb 28."""

    months_per_step = 12
    label = "year"

    def instant_at(self, index: int) -> datetime:
        return self.start + relativedelta(years=index * self._amount)
