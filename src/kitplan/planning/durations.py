"""Duration arithmetic for kitting jobs: delays, station-count changes, and derived totals.

Job duration model::

    expected_job_duration = setup + make_ready + ceil(expected_kit_duration * qty / stations) + take_down

``setup + make_ready + take_down`` is fixed overhead. Only the kitting part is parallelised across
stations. Delays add to the total without touching step ordering.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from kitplan.scenario.contract.models import Delay, Job, RouteStep
from kitplan.scheduling.timeline import InvalidInputError

__all__ = [
    "expected_kit_duration",
    "expected_job_duration",
    "build_job",
    "apply_delays",
    "apply_production_delays",
    "recalculate_duration",
    "format_duration",
]


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def expected_kit_duration(route_steps: Sequence[RouteStep]) -> int:
    """Seconds to kit a single unit (sum of route steps)."""
    return sum(step.expected_seconds for step in route_steps)


def expected_job_duration(
    kit_duration: int,
    ordered_quantity: int,
    setup: int = 0,
    make_ready: int = 0,
    take_down: int = 0,
    station_count: int = 1,
) -> int:
    """Nominal job seconds with kitting spread over ``station_count`` stations."""
    if station_count < 1:
        raise InvalidInputError(f"station_count must be >= 1, got {station_count}")
    parallel = _ceil_div(kit_duration * ordered_quantity, station_count)
    return setup + make_ready + parallel + take_down


def build_job(record: Mapping[str, Any]) -> Job:
    """Validate a job record, deriving kit/job durations when the record omits them."""
    data = dict(record)
    try:
        raw_steps = data.get("routeSteps") or data.get("route_steps") or []
        steps = [RouteStep.model_validate(step) for step in raw_steps]
    except ValidationError as exc:
        raise InvalidInputError(f"invalid route steps: {exc}") from exc

    def pick(camel: str, snake: str, default: Any = 0) -> Any:
        value = data.get(camel, data.get(snake))
        return default if value is None else value

    if pick("expectedKitDuration", "expected_kit_duration", None) is None:
        data["expectedKitDuration"] = expected_kit_duration(steps)
    if pick("expectedJobDuration", "expected_job_duration", None) is None:
        data["expectedJobDuration"] = expected_job_duration(
            int(pick("expectedKitDuration", "expected_kit_duration")),
            int(pick("orderedQuantity", "ordered_quantity")),
            int(pick("setup", "setup")),
            int(pick("makeReady", "make_ready")),
            int(pick("takeDown", "take_down")),
            int(pick("stationCount", "station_count", 1)),
        )
    try:
        return Job.model_validate(data)
    except ValidationError as exc:
        raise InvalidInputError(f"invalid job record: {exc}") from exc


def apply_delays(job: Job, delays: Iterable[Delay]) -> Job:
    """Return a copy of ``job`` with the durations of its delays added.

    Only delays addressed to ``job.id`` contribute. The input job is not modified.
    """

    extra = sum(delay.duration_seconds for delay in delays if delay.job_id == job.id)
    updated = job.model_copy(deep=True)
    updated.expected_job_duration = job.expected_job_duration + extra
    return updated


def apply_production_delays(jobs: Sequence[Job], delays: Iterable[Delay]) -> list[Job]:
    """Baseline view: apply production delays (``scenario_id is None``) to each job."""
    production = [delay for delay in delays if delay.is_production]
    return [apply_delays(job, production) for job in jobs]


def recalculate_duration(job: Job, new_station_count: int) -> Job:
    """Return a copy of ``job`` re-timed for ``new_station_count`` stations.

    The parallelisable part ``expected_job_duration - fixed_overhead`` scales by
    ``old / new`` and is rounded up to whole seconds; fixed overhead is unchanged. Keeping the same
    station count returns an identical copy.

    Raises
    ------
    InvalidInputError
        If ``new_station_count < 1``.
    """

    if new_station_count < 1:
        raise InvalidInputError(f"station_count must be >= 1, got {new_station_count}")
    updated = job.model_copy(deep=True)
    if new_station_count == job.station_count:
        return updated
    fixed = min(job.fixed_overhead, job.expected_job_duration)
    parallel = job.expected_job_duration - fixed
    scaled = _ceil_div(parallel * job.station_count, new_station_count)
    updated.expected_job_duration = fixed + scaled
    updated.station_count = new_station_count
    return updated


def format_duration(seconds: float) -> str:
    """Format seconds as ``"1h 2m 3s"`` / ``"2m 3s"`` / ``"3s"``."""
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
