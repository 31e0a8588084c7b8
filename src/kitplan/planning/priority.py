"""Due-date urgency for kitting jobs.

Priority follows the time left until ``due_date``: overdue or due within 24 hours is ``high``,
within 72 hours ``medium``, anything later ``low``. Jobs without a due date have no priority.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum

from kitplan.scenario.contract.models import Job

__all__ = ["JobPriority", "HIGH_WITHIN", "MEDIUM_WITHIN", "is_overdue", "is_late", "job_priority"]

HIGH_WITHIN = timedelta(hours=24)
MEDIUM_WITHIN = timedelta(hours=72)


class JobPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def _now(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc).replace(tzinfo=None)
    if now.tzinfo is not None:
        return now.astimezone(timezone.utc).replace(tzinfo=None)
    return now


def is_overdue(job: Job, now: datetime | None = None) -> bool:
    """Return ``True`` when the job's due date has already passed at ``now`` (naive UTC)."""
    return job.due_date is not None and job.due_date < _now(now)


def job_priority(job: Job, now: datetime | None = None) -> JobPriority | None:
    """Classify how urgent ``job`` is at ``now``.

    Parameters
    ----------
    job :
        Job whose ``due_date`` drives the classification.
    now :
        Reference instant; defaults to the current UTC time. Aware values are converted to naive
        UTC like every other timestamp in the models.

    Returns
    -------
    JobPriority or None
        ``None`` when the job carries no due date.
    """

    if job.due_date is None:
        return None
    remaining = job.due_date - _now(now)
    if remaining < HIGH_WITHIN:
        return JobPriority.HIGH
    if remaining < MEDIUM_WITHIN:
        return JobPriority.MEDIUM
    return JobPriority.LOW


def is_late(job: Job, end: datetime | None) -> bool | None:
    """Whether a scheduled ``end`` misses the job's due date (``None`` if either is unknown)."""
    if job.due_date is None or end is None:
        return None
    return end > job.due_date
