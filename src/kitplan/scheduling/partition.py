"""Split a scheduled span into per-day calendar segments."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from kitplan.scenario.contract.models import SchedulerSettings, Shift
from kitplan.scheduling.calendar import ShiftCalendar, resolve_eligible_shifts
from kitplan.scheduling.forward import ScheduleResult
from kitplan.scheduling.timeline import InvalidInputError, ProductiveWindow

__all__ = ["DaySegment", "END_OF_DAY", "partition", "partition_schedule", "segments_from_windows"]

END_OF_DAY = time(23, 59)


@dataclass(frozen=True, slots=True)
class DaySegment:
    """Calendar-displayable slice of a job on a single date.

    ``end_time`` is capped at 23:59 when work continues past midnight. ``productive_seconds`` is
    the productive time inside the segment (breaks excluded).
    """

    date: date
    start_time: time
    end_time: time
    productive_seconds: int


def _split_at_midnight(window: ProductiveWindow) -> Iterable[tuple[date, datetime, datetime]]:
    lo = window.start
    while lo < window.end:
        midnight = datetime.combine(lo.date() + timedelta(days=1), time())
        hi = min(window.end, midnight)
        yield lo.date(), lo, hi
        lo = hi


def segments_from_windows(
    start: datetime, end: datetime, windows: Iterable[ProductiveWindow]
) -> list[DaySegment]:
    """Group productive windows lying inside ``[start, end]`` into per-day segments.

    Days without productive time produce no segment.
    """

    by_day: dict[date, list[tuple[datetime, datetime]]] = {}
    for window in windows:
        for day, lo, hi in _split_at_midnight(window):
            by_day.setdefault(day, []).append((lo, hi))

    segments: list[DaySegment] = []
    for day in sorted(by_day):
        pieces = by_day[day]
        seconds = int(sum(((hi - lo) for lo, hi in pieces), timedelta()).total_seconds())
        if seconds <= 0:
            continue
        opened = start.time() if day == start.date() else pieces[0][0].time()
        if day == end.date():
            closed = end.time()
        elif pieces[-1][1].date() > day:
            closed = END_OF_DAY
        else:
            closed = pieces[-1][1].time()
        segments.append(
            DaySegment(date=day, start_time=opened, end_time=closed, productive_seconds=seconds)
        )
    return segments


def _segments(
    start: datetime, end: datetime, windows: Sequence[ProductiveWindow]
) -> list[DaySegment]:
    if start.date() != end.date():
        return segments_from_windows(start, end, windows)
    seconds = sum(window.seconds for window in windows)
    if seconds <= 0:
        return []
    return [DaySegment(start.date(), start.time(), end.time(), seconds)]


def partition(
    start: datetime,
    end: datetime,
    shifts: Sequence[Shift],
    allowed_shift_ids: Iterable[str] = (),
    include_weekends: bool = False,
    ignore_active_flag: bool = False,
    *,
    settings: SchedulerSettings | None = None,
) -> list[DaySegment]:
    """Partition ``[start, end]`` into contiguous, non-overlapping day segments.

    Parameters
    ----------
    start, end:
        Scheduled span (typically ``ScheduleResult.start``/``end``).
    shifts, allowed_shift_ids, include_weekends, ignore_active_flag:
        Same eligibility inputs the span was scheduled with. With no shifts every hour counts as
        productive, mirroring the scheduler's 24/7 fallback.

    Returns
    -------
    list of DaySegment
        A single ``[start.time, end.time]`` segment when both instants fall on the same date and
        the span holds productive time. Otherwise the first segment opens at ``start.time``, the
        last closes at ``end.time``, and each day in between spans its eligible productive
        window. Weekend or otherwise idle days are absent, so a zero-length span or one with no
        eligible shift yields an empty list.
    """

    if end < start:
        raise InvalidInputError(f"partition end {end} precedes start {start}")
    calendar = ShiftCalendar.from_settings(shifts, settings)
    if shifts:
        eligible = resolve_eligible_shifts(shifts, allowed_shift_ids, ignore_active_flag)
        windows = list(calendar.iter_windows(start, eligible, include_weekends, until=end))
    else:
        windows = [ProductiveWindow(start, end)] if end > start else []
    return _segments(start, end, windows)


def partition_schedule(result: ScheduleResult) -> list[DaySegment]:
    """Partition a forward-scheduling result using the windows it actually consumed."""
    if result.end is None:
        return []
    return _segments(result.start, result.end, result.windows)
