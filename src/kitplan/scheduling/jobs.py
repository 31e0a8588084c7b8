"""Job-level scheduling: resolve a job's start instant, schedule it, and partition the span."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime

from kitplan.scenario.contract.models import Job, SchedulerSettings, Shift
from kitplan.scheduling.forward import ScheduleResult, schedule_forward
from kitplan.scheduling.partition import DaySegment, partition_schedule
from kitplan.scheduling.timeline import TimeOfDay

__all__ = ["JobSchedule", "job_start", "schedule_job", "schedule_jobs"]


@dataclass(slots=True)
class JobSchedule:
    """Scheduled span of a single job plus its calendar segments."""

    job: Job
    result: ScheduleResult
    segments: list[DaySegment] = field(default_factory=list)

    @property
    def job_id(self) -> str:
        return self.job.id


def job_start(
    job: Job, settings: SchedulerSettings | None = None, default_date: date | None = None
) -> datetime:
    """Combine ``scheduled_date`` and ``scheduled_start_time`` into the scheduling start.

    Jobs without a start time use ``settings.default_start_time``; jobs without a date use
    ``default_date`` (today when omitted).
    """

    settings = settings or SchedulerSettings()
    day = job.scheduled_date or default_date or date.today()
    start_time = job.scheduled_start_time or settings.default_start_time
    return TimeOfDay.parse(start_time).on(day)


def schedule_job(
    job: Job,
    shifts: Sequence[Shift],
    settings: SchedulerSettings | None = None,
    *,
    default_date: date | None = None,
    ignore_active_flag: bool = False,
) -> JobSchedule:
    """Forward-schedule ``job`` on its allowed shifts and partition the result by day."""
    settings = settings or SchedulerSettings()
    result = schedule_forward(
        job_start(job, settings, default_date),
        job.expected_job_duration,
        shifts,
        job.allowed_shift_ids,
        job.include_weekends,
        ignore_active_flag,
        settings=settings,
    )
    return JobSchedule(job=job, result=result, segments=partition_schedule(result))


def schedule_jobs(
    jobs: Sequence[Job],
    shifts: Sequence[Shift],
    settings: SchedulerSettings | None = None,
    *,
    default_date: date | None = None,
    ignore_active_flag: bool = False,
) -> list[JobSchedule]:
    """Schedule every job independently (jobs do not compete for shift capacity)."""
    return [
        schedule_job(
            job,
            shifts,
            settings,
            default_date=default_date,
            ignore_active_flag=ignore_active_flag,
        )
        for job in jobs
    ]
