from datetime import datetime, timedelta, timezone

import pytest

from kitplan.planning import JobPriority, is_late, is_overdue, job_priority
from kitplan.scenario.contract.models import Job

NOW = datetime(2025, 10, 27, 8, 0)


def _job(due=None) -> Job:
    return Job(id="J", job_number="1", expected_job_duration=60, due_date=due)


@pytest.mark.parametrize(
    "offset, expected",
    [
        (timedelta(hours=-1), JobPriority.HIGH),
        (timedelta(hours=23, minutes=59), JobPriority.HIGH),
        (timedelta(hours=24), JobPriority.MEDIUM),
        (timedelta(hours=71), JobPriority.MEDIUM),
        (timedelta(hours=72), JobPriority.LOW),
        (timedelta(days=10), JobPriority.LOW),
    ],
)
def test_priority_bands(offset, expected):
    assert job_priority(_job(NOW + offset), NOW) is expected


def test_no_due_date_has_no_priority():
    job = _job()
    assert job_priority(job, NOW) is None
    assert not is_overdue(job, NOW)
    assert is_late(job, NOW) is None


def test_overdue_compares_naive_utc():
    job = _job("2025-10-27T09:00:00+01:00")
    assert job.due_date == NOW
    assert not is_overdue(job, NOW)
    assert is_overdue(job, NOW + timedelta(seconds=1))
    aware_now = datetime(2025, 10, 27, 10, 0, tzinfo=timezone(timedelta(hours=2)))
    assert is_overdue(job, aware_now + timedelta(seconds=1))


def test_date_only_due_date_means_midnight():
    job = _job("2025-10-29")
    assert job.due_date == datetime(2025, 10, 29)
    assert job_priority(job, NOW) is JobPriority.MEDIUM


def test_late_when_end_passes_due_date():
    job = _job(NOW)
    assert is_late(job, NOW) is False
    assert is_late(job, NOW + timedelta(seconds=1)) is True
    assert is_late(job, None) is None
