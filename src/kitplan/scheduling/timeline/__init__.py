"""Timeline primitives: time of day, wrap-aware daily intervals, shift geometry."""

from .models import (
    MINUTES_PER_DAY,
    DailyInterval,
    InvalidInputError,
    ProductiveWindow,
    ShiftGeometry,
    TimeOfDay,
    build_shift_geometry,
    normalise_time_string,
)

__all__ = [
    "MINUTES_PER_DAY",
    "DailyInterval",
    "InvalidInputError",
    "ProductiveWindow",
    "ShiftGeometry",
    "TimeOfDay",
    "build_shift_geometry",
    "normalise_time_string",
]
