"""Shift calendar: eligibility, productive minutes, and productive-window generation.

Productive windows are produced as a chronological stream. Each shift instance belongs to the
calendar date on which it opens (an overnight shift opening Friday 23:00 is a Friday shift even
though it runs into Saturday). Productive pieces of all eligible shift instances are merged when
they touch or overlap, so back-to-back shifts (07:00-15:00 then 15:00-23:00) form one window.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from kitplan.scenario.contract.models import SchedulerSettings, Shift
from kitplan.scheduling.timeline import InvalidInputError, ProductiveWindow

__all__ = [
    "ShiftCalendar",
    "productive_minutes",
    "resolve_eligible_shifts",
    "total_productive_hours_per_day",
    "calendar_duration",
]


def productive_minutes(shift: Shift) -> int:
    """Return the shift span in minutes (overnight aware) minus its break."""
    return shift.geometry().productive_minutes


def resolve_eligible_shifts(
    shifts: Sequence[Shift],
    allowed_shift_ids: Iterable[str] = (),
    ignore_active_flag: bool = False,
) -> list[Shift]:
    """Select the shifts a job may be scheduled on.

    Shifts listed in ``allowed_shift_ids`` when it is non-empty, otherwise every shift; then
    restricted to active shifts unless ``ignore_active_flag`` is set (what-if shift
    configurations that have not been activated globally). Unknown ids are ignored.
    """

    allowed = set(allowed_shift_ids)
    pool = [shift for shift in shifts if shift.id in allowed] if allowed else list(shifts)
    if not ignore_active_flag:
        pool = [shift for shift in pool if shift.is_active]
    return sorted(pool, key=lambda shift: (shift.order, shift.id))


def total_productive_hours_per_day(shifts: Sequence[Shift]) -> float:
    """Sum of productive hours of ``shifts`` (one instance each)."""
    return sum(productive_minutes(shift) for shift in shifts) / 60.0


def calendar_duration(duration_seconds: float, shifts: Sequence[Shift]) -> tuple[int, float]:
    """Rough ``(days, hours)`` estimate of a duration under the given daily shifts.

    Without shifts the estimate assumes 24 productive hours per day. This is a display helper;
    use the forward scheduler for exact end instants.
    """

    hours = duration_seconds / 3600.0
    per_day = total_productive_hours_per_day(shifts) if shifts else 24.0
    if per_day <= 0:
        raise InvalidInputError("shifts provide no productive time per day")
    return int(hours // per_day), hours % per_day


@dataclass(slots=True)
class ShiftCalendar:
    """Window geometry over a fixed set of shift definitions.

    Parameters
    ----------
    shifts:
        All known shift definitions (active or not).
    weekend_days:
        Weekday numbers (``Monday == 0``) skipped unless a job includes weekends.
    max_horizon_days:
        Number of calendar days searched after a starting instant before window generation stops.
    """

    shifts: tuple[Shift, ...]
    weekend_days: tuple[int, ...] = (5, 6)
    max_horizon_days: int = 400

    @classmethod
    def from_settings(
        cls, shifts: Sequence[Shift], settings: SchedulerSettings | None = None
    ) -> ShiftCalendar:
        settings = settings or SchedulerSettings()
        return cls(
            shifts=tuple(shifts),
            weekend_days=tuple(settings.weekend_days),
            max_horizon_days=settings.max_horizon_days,
        )

    def eligible(
        self, allowed_shift_ids: Iterable[str] = (), ignore_active_flag: bool = False
    ) -> list[Shift]:
        return resolve_eligible_shifts(self.shifts, allowed_shift_ids, ignore_active_flag)

    def is_workday(self, day: date, include_weekends: bool) -> bool:
        return include_weekends or day.weekday() not in self.weekend_days

    def iter_windows(
        self,
        since: datetime,
        eligible_shifts: Sequence[Shift],
        include_weekends: bool,
        until: datetime | None = None,
    ) -> Iterator[ProductiveWindow]:
        """Yield merged productive windows at or after ``since``, clipped to ``until``.

        ``until`` defaults to ``since + max_horizon_days``. A window still open at the bound is
        yielded truncated to it.
        """

        geometries = [shift.geometry() for shift in eligible_shifts]
        if not geometries:
            return
        bound = until if until is not None else since + timedelta(days=self.max_horizon_days)
        if bound <= since:
            return

        # instances that opened the previous day may still be running at ``since``
        day = since.date() - timedelta(days=1)
        pending: tuple[datetime, datetime] | None = None
        while day <= bound.date():
            if self.is_workday(day, include_weekends):
                pieces = sorted(
                    interval
                    for geometry in geometries
                    for interval in geometry.productive_intervals_on(day)
                )
                for lo, hi in pieces:
                    if hi <= since or lo >= bound:
                        continue
                    lo, hi = max(lo, since), min(hi, bound)
                    if pending is not None and lo <= pending[1]:
                        pending = (pending[0], max(pending[1], hi))
                        continue
                    if pending is not None:
                        yield ProductiveWindow(*pending)
                    pending = (lo, hi)
            day += timedelta(days=1)
        if pending is not None:
            yield ProductiveWindow(*pending)

    def next_productive_window(
        self,
        pointer: datetime,
        eligible_shifts: Sequence[Shift],
        include_weekends: bool,
    ) -> ProductiveWindow | None:
        """Earliest productive window at or after ``pointer``.

        Returns ``None`` when no eligible shift opens within the horizon (no shifts at all, or
        only shifts whose break swallows the whole span).
        """

        return next(self.iter_windows(pointer, eligible_shifts, include_weekends), None)

    def productive_seconds_between(
        self,
        start: datetime,
        end: datetime,
        eligible_shifts: Sequence[Shift],
        include_weekends: bool,
    ) -> int:
        """Total productive seconds of ``eligible_shifts`` inside ``[start, end)``."""
        total = timedelta()
        for window in self.iter_windows(start, eligible_shifts, include_weekends, until=end):
            total += window.end - window.start
        return int(total.total_seconds())
