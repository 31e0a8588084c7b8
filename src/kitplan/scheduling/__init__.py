"""Scheduling utilities (timeline primitives, shift calendar, forward scheduler, partitioner).

Only the dependency-free timeline primitives are re-exported here; import the calendar, forward
scheduler and partitioner from their modules.
"""

from .timeline import (
    DailyInterval,
    InvalidInputError,
    ProductiveWindow,
    ShiftGeometry,
    TimeOfDay,
    build_shift_geometry,
)

__all__ = [
    "DailyInterval",
    "InvalidInputError",
    "ProductiveWindow",
    "ShiftGeometry",
    "TimeOfDay",
    "build_shift_geometry",
]
