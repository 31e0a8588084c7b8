"""Reporting helpers for job schedules and scenario comparisons."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime

import pandas as pd

from kitplan.planning.durations import format_duration
from kitplan.planning.priority import is_late, job_priority
from kitplan.scenario.contract.models import Job, SchedulerSettings, Shift
from kitplan.scheduling.jobs import JobSchedule, schedule_jobs

__all__ = [
    "ScenarioComparison",
    "schedules_dataframe",
    "segments_dataframe",
    "compare_scenario",
    "format_duration",
]

_SCHEDULE_COLUMNS = [
    "job_id",
    "job_number",
    "start",
    "end",
    "duration_seconds",
    "duration",
    "issue",
    "fallback",
    "due_date",
    "late",
    "priority",
]
_SEGMENT_COLUMNS = ["job_id", "job_number", "date", "start_time", "end_time", "productive_seconds"]
_COMPARISON_COLUMNS = [
    "job_id",
    "job_number",
    "operation",
    "deleted",
    "baseline_end",
    "scenario_end",
    "delta_seconds",
    "due_date",
    "baseline_late",
    "scenario_late",
]


@dataclass(slots=True)
class ScenarioComparison:
    """Baseline vs. scenario schedules for the jobs a scenario touches.

    Attributes
    ----------
    scenario_id : str
        Scenario being compared.
    baseline : list[JobSchedule]
        Schedules of the baseline jobs (production delays applied by the caller).
    scenario : list[JobSchedule]
        Schedules of the materialized scenario jobs.
    frame : pandas.DataFrame
        One row per scenario job with ``baseline_end``, ``scenario_end`` and ``delta_seconds``.
    """

    scenario_id: str
    baseline: list[JobSchedule]
    scenario: list[JobSchedule]
    frame: pd.DataFrame


def schedules_dataframe(
    schedules: Sequence[JobSchedule], *, now: datetime | None = None
) -> pd.DataFrame:
    """Return one row per scheduled job (start, end, duration, issue, due-date status).

    ``late`` compares the scheduled end with the job's due date and ``priority`` classifies the
    due date relative to ``now`` (current UTC time by default). Both are ``None`` without a due
    date.
    """

    rows: list[dict[str, object]] = []
    for item in schedules:
        result = item.result
        priority = job_priority(item.job, now)
        rows.append(
            {
                "job_id": item.job_id,
                "job_number": item.job.job_number,
                "start": result.start,
                "end": result.end,
                "duration_seconds": result.duration_seconds,
                "duration": format_duration(result.duration_seconds),
                "issue": result.issue.value if result.issue else None,
                "fallback": result.fallback,
                "due_date": item.job.due_date,
                "late": is_late(item.job, result.end),
                "priority": priority.value if priority else None,
            }
        )
    return pd.DataFrame(rows, columns=_SCHEDULE_COLUMNS)


def segments_dataframe(schedules: Sequence[JobSchedule]) -> pd.DataFrame:
    """Return calendar segments as a tidy frame sorted by date and job.

    Returns
    -------
    pandas.DataFrame
        Columns ``job_id``, ``job_number``, ``date``, ``start_time``, ``end_time`` and
        ``productive_seconds``. Unscheduled jobs contribute no rows.
    """

    rows: list[dict[str, object]] = []
    for item in schedules:
        for segment in item.segments:
            rows.append(
                {
                    "job_id": item.job_id,
                    "job_number": item.job.job_number,
                    "date": segment.date,
                    "start_time": segment.start_time.strftime("%H:%M"),
                    "end_time": segment.end_time.strftime("%H:%M"),
                    "productive_seconds": segment.productive_seconds,
                }
            )
    if not rows:
        return pd.DataFrame(columns=_SEGMENT_COLUMNS)
    return (
        pd.DataFrame(rows, columns=_SEGMENT_COLUMNS)
        .sort_values(["date", "start_time", "job_id"])
        .reset_index(drop=True)
    )


def compare_scenario(
    scenario_id: str,
    baseline_jobs: Sequence[Job],
    scenario_jobs: Sequence[Job],
    shifts: Sequence[Shift],
    settings: SchedulerSettings | None = None,
    *,
    default_date: date | None = None,
    ignore_active_flag: bool = False,
) -> ScenarioComparison:
    """Schedule baseline and scenario jobs side by side.

    Parameters
    ----------
    scenario_id :
        Identifier threaded into the result.
    baseline_jobs :
        Baseline jobs, typically after :func:`kitplan.planning.apply_production_delays`.
    scenario_jobs :
        Output of :func:`kitplan.planning.materialize` (tagged jobs only).
    shifts, settings, default_date, ignore_active_flag :
        Forwarded to :func:`kitplan.scheduling.jobs.schedule_jobs`.

    Returns
    -------
    ScenarioComparison
        ``delta_seconds`` is ``scenario_end - baseline_end``; it is ``None`` for added jobs, for
        ghosted (deleted) jobs and whenever either side could not be scheduled. ``due_date`` is the
        scenario job's due date; ``baseline_late`` and ``scenario_late`` tell whether each end
        misses the due date of its own version of the job.
    """

    options = {"default_date": default_date, "ignore_active_flag": ignore_active_flag}
    touched = {job.id for job in scenario_jobs}
    baseline = schedule_jobs(
        [job for job in baseline_jobs if job.id in touched], shifts, settings, **options
    )
    scenario = schedule_jobs(scenario_jobs, shifts, settings, **options)
    baseline_by_id = {item.job_id: item for item in baseline}

    rows: list[dict[str, object]] = []
    for item in scenario:
        overlay = item.job.overlay
        before_item = baseline_by_id.get(item.job_id)
        before = before_item.result.end if before_item else None
        after = item.result.end
        deleted = bool(overlay and overlay.deleted)
        delta = None
        if before is not None and after is not None and not deleted:
            delta = (after - before).total_seconds()
        rows.append(
            {
                "job_id": item.job_id,
                "job_number": item.job.job_number,
                "operation": overlay.operation.value if overlay else None,
                "deleted": deleted,
                "baseline_end": before,
                "scenario_end": after,
                "delta_seconds": delta,
                "due_date": item.job.due_date,
                "baseline_late": is_late(before_item.job, before) if before_item else None,
                "scenario_late": None if deleted else is_late(item.job, after),
            }
        )
    return ScenarioComparison(
        scenario_id=scenario_id,
        baseline=baseline,
        scenario=scenario,
        frame=pd.DataFrame(rows, columns=_COMPARISON_COLUMNS),
    )
