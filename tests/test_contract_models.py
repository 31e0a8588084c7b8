from datetime import date, datetime

import pytest
from pydantic import ValidationError

from kitplan.scenario.contract.models import (
    ChangeOperation,
    Delay,
    Job,
    PlanningSnapshot,
    Scenario,
    ScenarioChange,
    SchedulerSettings,
    Shift,
)


def test_shift_accepts_camel_case_and_normalises_times():
    shift = Shift.model_validate(
        {"id": "n", "name": "Night", "startTime": "22:00", "endTime": "6:00", "breakDuration": 0}
    )
    assert shift.end_time == "06:00"
    assert shift.is_overnight
    assert shift.geometry().productive_minutes == 8 * 60


@pytest.mark.parametrize(
    "payload",
    [
        {"start_time": "25:00", "end_time": "08:00"},
        {
            "start_time": "08:00",
            "end_time": "17:00",
            "break_start": "18:00",
            "break_duration_minutes": 15,
        },
        {"start_time": "08:00", "end_time": "17:00", "break_duration_minutes": -5},
    ],
)
def test_shift_rejects_invalid_geometry(payload):
    with pytest.raises(ValidationError):
        Shift(id="s", name="S", **payload)


def test_job_strips_timestamp_from_scheduled_date():
    job = Job.model_validate(
        {
            "id": "J",
            "jobNumber": "1",
            "expectedJobDuration": 10,
            "scheduledDate": "2025-10-27T00:00:00.000Z",
            "allowedShiftIds": ["day", "day", "night"],
            "routeSteps": [
                {"name": "a", "expectedSeconds": 5},
                {"name": "b", "expectedSeconds": 5, "order": 7},
            ],
        }
    )
    assert job.scheduled_date == date(2025, 10, 27)
    assert job.allowed_shift_ids == ["day", "night"]
    assert [step.order for step in job.route_steps] == [0, 7]


def test_job_rejects_zero_stations():
    with pytest.raises(ValidationError):
        Job(id="J", job_number="1", expected_job_duration=1, station_count=0)


def test_delay_aliases_and_bounds():
    delay = Delay.model_validate(
        {"id": "D", "jobId": "J", "name": "QA", "duration": 60, "insertAfter": 2}
    )
    assert delay.duration_seconds == 60
    assert delay.insert_after_step_order == 2
    assert delay.is_production
    with pytest.raises(ValidationError):
        Delay(id="D", job_id="J", name="QA", duration_seconds=0)


def test_change_requires_job_id_except_add():
    with pytest.raises(ValidationError):
        ScenarioChange(id="C", operation=ChangeOperation.MODIFY, created_at=datetime(2025, 1, 1))
    add = ScenarioChange(id="C", operation="ADD", created_at="2025-01-01T10:00:00+01:00")
    assert add.created_at == datetime(2025, 1, 1, 9, 0)


def test_scenario_job_ids():
    scenario = Scenario(
        id="S",
        name="S",
        changes=[
            ScenarioChange(id="1", operation="DELETE", job_id="J1", created_at=datetime(2025, 1, 1)),
            ScenarioChange(id="2", operation="ADD", created_at=datetime(2025, 1, 2)),
        ],
    )
    assert scenario.job_ids() == {"J1"}


def test_settings_validation():
    assert SchedulerSettings(weekend_days=(6, 5, 6)).weekend_days == (5, 6)
    with pytest.raises(ValidationError):
        SchedulerSettings(max_horizon_days=0)
    with pytest.raises(ValidationError):
        SchedulerSettings(weekend_days=(7,))
    with pytest.raises(ValidationError):
        SchedulerSettings(default_start_time="later")


def test_snapshot_lookup_and_delay_split():
    snapshot = PlanningSnapshot(
        scenarios=[Scenario(id="S1", name="One")],
        delays=[
            Delay(id="D1", job_id="J", name="a", duration_seconds=1),
            Delay(id="D2", job_id="J", name="b", duration_seconds=1, scenario_id="S1"),
        ],
    )
    assert snapshot.scenario("S1").name == "One"
    assert [d.id for d in snapshot.production_delays()] == ["D1"]
    assert [d.id for d in snapshot.scenario_delays("S1")] == ["D2"]
    with pytest.raises(KeyError):
        snapshot.scenario("S2")
