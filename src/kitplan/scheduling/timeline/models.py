"""Time-of-day and wrap-aware interval primitives for shift geometry."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


class InvalidInputError(ValueError):
    """Raised when an input value is malformed (bad time string, negative duration, ...)."""


@dataclass(frozen=True, slots=True)
class TimeOfDay:
    """Minute-of-day in ``[0, 1440)``."""

    minutes: int

    def __post_init__(self) -> None:
        if not 0 <= self.minutes < MINUTES_PER_DAY:
            raise InvalidInputError(f"minute-of-day out of range: {self.minutes}")

    @classmethod
    def parse(cls, value: str) -> TimeOfDay:
        """Parse an ``"HH:MM"`` string (24-hour clock)."""
        if not isinstance(value, str):
            raise InvalidInputError(f"time must be an 'HH:MM' string, got {value!r}")
        match = _TIME_RE.match(value.strip())
        if match is None:
            raise InvalidInputError(f"malformed time string {value!r} (expected 'HH:MM')")
        hours, minutes = int(match.group(1)), int(match.group(2))
        if hours > 23 or minutes > 59:
            raise InvalidInputError(f"time {value!r} outside 00:00-23:59")
        return cls(hours * 60 + minutes)

    @classmethod
    def from_time(cls, value: time) -> TimeOfDay:
        return cls(value.hour * 60 + value.minute)

    def to_time(self) -> time:
        return time(self.minutes // 60, self.minutes % 60)

    def on(self, day: date) -> datetime:
        """Return the naive datetime for this time of day on ``day``."""
        return datetime.combine(day, time()) + timedelta(minutes=self.minutes)

    def __str__(self) -> str:
        return f"{self.minutes // 60:02d}:{self.minutes % 60:02d}"


def normalise_time_string(value: str) -> str:
    """Validate ``value`` and return its zero-padded ``"HH:MM"`` form."""
    return str(TimeOfDay.parse(value))


@dataclass(frozen=True, slots=True)
class DailyInterval:
    """Recurring daily interval that may wrap past midnight.

    Attributes
    ----------
    start:
        Time of day when the interval opens.
    length_minutes:
        Interval length in minutes, ``1..1440``. Intervals with ``start + length > 1440`` wrap
        into the following calendar day.
    """

    start: TimeOfDay
    length_minutes: int

    def __post_init__(self) -> None:
        if not 0 < self.length_minutes <= MINUTES_PER_DAY:
            raise InvalidInputError(f"interval length must be in 1..1440, got {self.length_minutes}")

    @classmethod
    def between(cls, start: TimeOfDay, end: TimeOfDay) -> DailyInterval:
        """Build the interval from ``start`` to ``end``; ``end <= start`` wraps midnight."""
        length = end.minutes - start.minutes
        if length <= 0:
            length += MINUTES_PER_DAY
        return cls(start, length)

    @property
    def wraps(self) -> bool:
        return self.start.minutes + self.length_minutes > MINUTES_PER_DAY

    @property
    def end(self) -> TimeOfDay:
        return TimeOfDay((self.start.minutes + self.length_minutes) % MINUTES_PER_DAY)

    def offset_of(self, moment: TimeOfDay) -> int:
        """Minutes from the interval start to ``moment`` going forward (mod 24 h)."""
        return (moment.minutes - self.start.minutes) % MINUTES_PER_DAY

    def contains(self, moment: TimeOfDay) -> bool:
        return self.offset_of(moment) < self.length_minutes

    def on(self, day: date) -> tuple[datetime, datetime]:
        """Concrete ``[start, end)`` datetimes for the instance opening on ``day``."""
        opened = self.start.on(day)
        return opened, opened + timedelta(minutes=self.length_minutes)


@dataclass(frozen=True, slots=True)
class ShiftGeometry:
    """Window geometry of a shift: its span plus an optional break carved out of it."""

    span: DailyInterval
    break_offset: int | None = None
    break_minutes: int = 0

    @property
    def productive_minutes(self) -> int:
        return self.span.length_minutes - self.break_minutes

    def productive_offsets(self) -> tuple[tuple[int, int], ...]:
        """Productive ``(start, end)`` minute offsets relative to the shift start."""
        if self.break_offset is None or self.break_minutes == 0:
            return ((0, self.span.length_minutes),)
        pieces = (
            (0, self.break_offset),
            (self.break_offset + self.break_minutes, self.span.length_minutes),
        )
        return tuple(piece for piece in pieces if piece[1] > piece[0])

    def productive_intervals_on(self, day: date) -> list[tuple[datetime, datetime]]:
        """Concrete productive intervals of the shift instance that opens on ``day``."""
        opened, _ = self.span.on(day)
        return [
            (opened + timedelta(minutes=lo), opened + timedelta(minutes=hi))
            for lo, hi in self.productive_offsets()
        ]


def build_shift_geometry(
    start_time: str,
    end_time: str,
    break_start: str | None = None,
    break_minutes: int | None = None,
) -> ShiftGeometry:
    """Parse shift strings into a :class:`ShiftGeometry`.

    A break without both a start and a positive duration is ignored. A configured break must fall
    entirely inside the shift span, including wrap past midnight.
    """

    span = DailyInterval.between(TimeOfDay.parse(start_time), TimeOfDay.parse(end_time))
    if break_start is None or not break_minutes:
        return ShiftGeometry(span=span)
    if break_minutes < 0:
        raise InvalidInputError(f"break duration must be non-negative, got {break_minutes}")
    offset = span.offset_of(TimeOfDay.parse(break_start))
    if offset + break_minutes > span.length_minutes:
        raise InvalidInputError(
            f"break {break_start}+{break_minutes}min falls outside shift {start_time}-{end_time}"
        )
    return ShiftGeometry(span=span, break_offset=offset, break_minutes=break_minutes)


@dataclass(frozen=True, slots=True)
class ProductiveWindow:
    """Contiguous productive interval ``[start, end)`` in wall-clock time."""

    start: datetime
    end: datetime

    @property
    def seconds(self) -> int:
        return int((self.end - self.start).total_seconds())


__all__ = [
    "MINUTES_PER_DAY",
    "InvalidInputError",
    "TimeOfDay",
    "normalise_time_string",
    "DailyInterval",
    "ShiftGeometry",
    "build_shift_geometry",
    "ProductiveWindow",
]
