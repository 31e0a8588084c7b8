"""Forward shift-aware scheduling.

Jobs are scheduled forward from their start instant: the scheduler walks the productive windows of
the eligible shifts and consumes them until the job's duration is used up.

Example
-------
>>> from datetime import datetime
>>> from kitplan.scenario.contract.models import Shift
>>> from kitplan.scheduling.forward import schedule_forward
>>> day_shift = Shift(id="day", name="Day", start_time="08:00", end_time="17:00")
>>> result = schedule_forward(datetime(2025, 10, 27, 8, 0), 12045, [day_shift])
>>> result.end
datetime.datetime(2025, 10, 27, 11, 20, 45)
"""

from __future__ import annotations

import warnings
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from kitplan.scenario.contract.models import SchedulerSettings, Shift
from kitplan.scheduling.calendar import ShiftCalendar, resolve_eligible_shifts
from kitplan.scheduling.timeline import InvalidInputError, ProductiveWindow

__all__ = [
    "SchedulingIssue",
    "NoShiftsConfiguredWarning",
    "NoEligibleShiftsError",
    "ScheduleResult",
    "schedule_forward",
]


class SchedulingIssue(str, Enum):
    NO_ELIGIBLE_SHIFTS = "no_eligible_shifts"


class NoShiftsConfiguredWarning(RuntimeWarning):
    """Emitted when no shifts exist and scheduling degrades to 24/7 addition."""


class NoEligibleShiftsError(RuntimeError):
    """Raised by :meth:`ScheduleResult.require_end` when no eligible shift could host the job."""


@dataclass(slots=True)
class ScheduleResult:
    """Outcome of a forward scheduling call.

    Attributes
    ----------
    start:
        Instant scheduling started from.
    duration_seconds:
        Productive seconds requested.
    end:
        Exact end instant, or ``None`` when ``issue`` is set.
    eligible_shift_ids:
        Shifts that were considered, in order.
    windows:
        Productive intervals actually consumed, chronological.
    fallback:
        ``True`` when no shifts were configured and 24/7 addition was used.
    issue:
        Failure tag for expected conditions (currently only no eligible shifts).
    warnings:
        Human-readable soft signals (fallback notices).
    """

    start: datetime
    duration_seconds: float
    end: datetime | None = None
    eligible_shift_ids: tuple[str, ...] = ()
    windows: list[ProductiveWindow] = field(default_factory=list)
    fallback: bool = False
    issue: SchedulingIssue | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.issue is None and self.end is not None

    def require_end(self) -> datetime:
        """Return ``end`` or raise :class:`NoEligibleShiftsError`."""
        if self.end is None:
            raise NoEligibleShiftsError(
                f"no eligible shift can host {self.duration_seconds}s starting {self.start:%Y-%m-%d %H:%M}"
            )
        return self.end


def schedule_forward(
    start: datetime,
    duration_seconds: float,
    shifts: Sequence[Shift],
    allowed_shift_ids: Iterable[str] = (),
    include_weekends: bool = False,
    ignore_active_flag: bool = False,
    *,
    settings: SchedulerSettings | None = None,
) -> ScheduleResult:
    """Compute the end instant of ``duration_seconds`` of productive work starting at ``start``.

    Parameters
    ----------
    start:
        Naive wall-clock instant to start from. Idle time before the first productive window is
        skipped.
    duration_seconds:
        Productive seconds to consume. Must be non-negative.
    shifts:
        Every shift definition known to the caller. An empty sequence triggers the 24/7 fallback
        (with a :class:`NoShiftsConfiguredWarning`).
    allowed_shift_ids:
        Per-job shift restriction; empty means "globally active shifts".
    include_weekends:
        Schedule on weekend days as well.
    ignore_active_flag:
        Treat inactive shifts as eligible (what-if shift configurations).
    settings:
        Horizon bound and weekend definition; defaults to :class:`SchedulerSettings`.

    Returns
    -------
    ScheduleResult
        ``issue == SchedulingIssue.NO_ELIGIBLE_SHIFTS`` (and ``end is None``) when shifts exist but
        none is eligible, or when the horizon is exhausted before the duration is consumed.

    Raises
    ------
    InvalidInputError
        If ``duration_seconds`` is negative.
    """

    if duration_seconds < 0:
        raise InvalidInputError(f"duration must be non-negative, got {duration_seconds}")
    settings = settings or SchedulerSettings()

    if not shifts:
        message = "No shifts configured; scheduling 24/7 (every hour counts as productive)."
        warnings.warn(message, NoShiftsConfiguredWarning, stacklevel=2)
        end = start + timedelta(seconds=duration_seconds)
        return ScheduleResult(
            start=start,
            duration_seconds=duration_seconds,
            end=end,
            windows=[ProductiveWindow(start, end)] if end > start else [],
            fallback=True,
            warnings=[message],
        )

    eligible = resolve_eligible_shifts(shifts, allowed_shift_ids, ignore_active_flag)
    result = ScheduleResult(
        start=start,
        duration_seconds=duration_seconds,
        eligible_shift_ids=tuple(shift.id for shift in eligible),
    )
    if not eligible:
        result.issue = SchedulingIssue.NO_ELIGIBLE_SHIFTS
        return result

    calendar = ShiftCalendar.from_settings(shifts, settings)
    remaining = timedelta(seconds=duration_seconds)
    cursor = start
    if remaining > timedelta(0):
        for window in calendar.iter_windows(start, eligible, include_weekends):
            consumed = min(remaining, window.end - window.start)
            cursor = window.start + consumed
            result.windows.append(ProductiveWindow(window.start, cursor))
            remaining -= consumed
            if remaining <= timedelta(0):
                break

    if remaining > timedelta(0):
        result.issue = SchedulingIssue.NO_ELIGIBLE_SHIFTS
        result.warnings.append(
            f"Duration not consumed within {settings.max_horizon_days} days of {start:%Y-%m-%d}"
        )
        return result
    result.end = cursor
    return result
