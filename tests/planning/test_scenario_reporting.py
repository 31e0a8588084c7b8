from datetime import date, datetime

import pandas as pd

from kitplan.planning import (
    compare_scenario,
    materialize,
    schedules_dataframe,
    segments_dataframe,
)
from kitplan.planning.durations import build_job
from kitplan.scenario.contract.models import ChangeOperation, Scenario, ScenarioChange, Shift
from kitplan.scheduling.jobs import schedule_jobs

DAY = Shift(id="day", name="Day", start_time="08:00", end_time="17:00")


def _jobs():
    return [
        build_job(
            {
                "id": "J1",
                "jobNumber": "1001",
                "expectedJobDuration": 36000,
                "scheduledDate": "2025-10-27",
                "scheduledStartTime": "08:00",
            }
        ),
        build_job({"id": "J2", "jobNumber": "1002", "expectedJobDuration": 3600}),
    ]


def test_segments_dataframe_shape():
    schedules = schedule_jobs(_jobs(), [DAY], default_date=date(2025, 10, 29))
    frame = segments_dataframe(schedules)
    assert list(frame.columns) == [
        "job_id",
        "job_number",
        "date",
        "start_time",
        "end_time",
        "productive_seconds",
    ]
    assert frame["job_id"].tolist() == ["J1", "J1", "J2"]
    assert frame["end_time"].tolist() == ["17:00", "09:00", "09:00"]
    assert frame.groupby("job_id")["productive_seconds"].sum().to_dict() == {
        "J1": 36000,
        "J2": 3600,
    }


def test_empty_segments_keep_columns():
    frame = segments_dataframe([])
    assert frame.empty
    assert "productive_seconds" in frame.columns


def test_schedules_dataframe_reports_issue():
    inactive = DAY.model_copy(update={"is_active": False})
    schedules = schedule_jobs(_jobs()[:1], [inactive])
    frame = schedules_dataframe(schedules)
    assert frame.loc[0, "issue"] == "no_eligible_shifts"
    assert pd.isna(frame.loc[0, "end"])


def test_compare_scenario_deltas():
    jobs = _jobs()
    scenario = Scenario(
        id="S1",
        name="Faster",
        changes=[
            ScenarioChange(
                id="C1",
                operation=ChangeOperation.MODIFY,
                job_id="J1",
                change_data={"expectedJobDuration": 32400},
                created_at=datetime(2025, 10, 20),
            ),
            ScenarioChange(
                id="C2",
                operation=ChangeOperation.DELETE,
                job_id="J2",
                created_at=datetime(2025, 10, 20, 0, 1),
            ),
            ScenarioChange(
                id="C3",
                operation=ChangeOperation.ADD,
                change_data={"id": "J3", "jobNumber": "1003", "expectedJobDuration": 60},
                created_at=datetime(2025, 10, 20, 0, 2),
            ),
        ],
    )
    overlay = materialize(jobs, scenario)
    comparison = compare_scenario(
        "S1", jobs, overlay.jobs, [DAY], default_date=date(2025, 10, 27)
    )
    frame = comparison.frame.set_index("job_id")
    assert frame.loc["J1", "scenario_end"] == datetime(2025, 10, 27, 17, 0)
    assert frame.loc["J1", "baseline_end"] == datetime(2025, 10, 28, 9, 0)
    assert frame.loc["J1", "delta_seconds"] == -16 * 3600
    assert bool(frame.loc["J2", "deleted"])
    assert pd.isna(frame.loc["J2", "delta_seconds"])
    assert frame.loc["J3", "operation"] == "ADD"
    assert pd.isna(frame.loc["J3", "baseline_end"])
    assert len(comparison.baseline) == 2


def test_schedules_dataframe_flags_late_jobs():
    jobs = [
        jobs_item.model_copy(update={"due_date": due})
        for jobs_item, due in zip(_jobs(), [datetime(2025, 10, 28, 8, 30), None])
    ]
    schedules = schedule_jobs(jobs, [DAY], default_date=date(2025, 10, 29))
    frame = schedules_dataframe(schedules, now=datetime(2025, 10, 27, 8, 0)).set_index("job_id")
    assert bool(frame.loc["J1", "late"])
    assert frame.loc["J1", "priority"] == "medium"
    assert frame.loc["J2", "late"] is None
    assert frame.loc["J2", "priority"] is None


def test_compare_scenario_reports_due_date_outcome():
    jobs = [_jobs()[0].model_copy(update={"due_date": datetime(2025, 10, 27, 18, 0)})]
    scenario = Scenario(
        id="S1",
        name="Faster",
        changes=[
            ScenarioChange(
                id="C1",
                operation=ChangeOperation.MODIFY,
                job_id="J1",
                change_data={"expectedJobDuration": 32400},
                created_at=datetime(2025, 10, 20),
            ),
            ScenarioChange(
                id="C2",
                operation=ChangeOperation.ADD,
                change_data={"id": "J3", "jobNumber": "1003", "expectedJobDuration": 60},
                created_at=datetime(2025, 10, 20, 0, 1),
            ),
        ],
    )
    overlay = materialize(jobs, scenario)
    frame = compare_scenario(
        "S1", jobs, overlay.jobs, [DAY], default_date=date(2025, 10, 27)
    ).frame.set_index("job_id")
    assert frame.loc["J1", "due_date"] == datetime(2025, 10, 27, 18, 0)
    assert bool(frame.loc["J1", "baseline_late"])
    assert not frame.loc["J1", "scenario_late"]
    assert frame.loc["J1", "scenario_late"] is not None
    assert frame.loc["J3", "baseline_late"] is None
    assert frame.loc["J3", "scenario_late"] is None
