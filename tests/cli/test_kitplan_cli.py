import json
from pathlib import Path

import pandas as pd
from typer.testing import CliRunner

from kitplan.cli.main import app
from kitplan.telemetry import read_jsonl


def test_shifts_lists_definitions(demo_snapshot_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["shifts", str(demo_snapshot_path)], prog_name="kitplan")
    assert result.exit_code == 0
    assert "night" in result.stdout
    assert "swing" in result.stdout


def test_schedule_exports_and_telemetry(demo_snapshot_path: Path, tmp_path: Path) -> None:
    runner = CliRunner()
    segments_path = tmp_path / "segments.csv"
    schedules_path = tmp_path / "schedules.json"
    telemetry_path = tmp_path / "telemetry" / "runs.jsonl"

    result = runner.invoke(
        app,
        [
            "schedule",
            str(demo_snapshot_path),
            "--out-csv",
            str(segments_path),
            "--out-json",
            str(schedules_path),
            "--telemetry-log",
            str(telemetry_path),
        ],
        prog_name="kitplan",
    )
    assert result.exit_code == 0, result.stdout
    assert "1 job(s) finish after their due date." in result.stdout

    segments = pd.read_csv(segments_path)
    by_job = segments.groupby("job_id")["productive_seconds"].sum().to_dict()
    # J2 carries a 30 minute production delay
    assert by_job == {"J1": 12045, "J2": 37800, "J3": 10800}
    j3 = segments[segments["job_id"] == "J3"]
    assert j3["end_time"].tolist() == ["23:59", "02:00"]

    schedules = json.loads(schedules_path.read_text())
    ends = {row["job_id"]: row["end"] for row in schedules}
    assert ends["J1"].startswith("2025-10-27T11:20:45")
    assert ends["J2"].startswith("2025-10-28T09:30:00")
    assert ends["J3"].startswith("2025-10-28T02:00:00")
    late = {row["job_id"]: row["late"] for row in schedules}
    assert late == {"J1": True, "J2": False, "J3": None}

    (record,) = read_jsonl(telemetry_path)
    assert record["command"] == "schedule"
    assert record["metrics"] == {"jobs": 3, "unscheduled": 0, "late": 1}
    events = list((telemetry_path.parent / "events").glob("*.jsonl"))
    assert len(events) == 1
    assert len(read_jsonl(events[0])) == 3


def test_schedule_rejects_unknown_job(demo_snapshot_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        app, ["schedule", str(demo_snapshot_path), "--job", "nope"], prog_name="kitplan"
    )
    assert result.exit_code != 0


def test_scenario_materialize_writes_jobs(demo_snapshot_path: Path, tmp_path: Path) -> None:
    runner = CliRunner()
    out = tmp_path / "s1.json"
    result = runner.invoke(
        app,
        ["scenario", "materialize", str(demo_snapshot_path), "S1", "--out-json", str(out)],
        prog_name="kitplan",
    )
    assert result.exit_code == 0, result.stdout
    assert "C4" in result.stdout

    jobs = {job["id"]: job for job in json.loads(out.read_text())}
    assert set(jobs) == {"J1", "J3", "J4"}
    # two stations plus the scenario's own 15 minute delay
    assert jobs["J1"]["expectedJobDuration"] == 1545 + 5250 + 900
    assert jobs["J3"]["overlay"]["deleted"] is True
    assert jobs["J4"]["overlay"]["operation"] == "ADD"


def test_scenario_compare_csv(demo_snapshot_path: Path, tmp_path: Path) -> None:
    runner = CliRunner()
    out = tmp_path / "compare.csv"
    result = runner.invoke(
        app,
        ["scenario", "compare", str(demo_snapshot_path), "S1", "--out-csv", str(out)],
        prog_name="kitplan",
    )
    assert result.exit_code == 0, result.stdout
    frame = pd.read_csv(out).set_index("job_id")
    assert frame.loc["J1", "delta_seconds"] == -(12045 - 7695)
    assert pd.isna(frame.loc["J3", "delta_seconds"])
    assert pd.isna(frame.loc["J4", "baseline_end"])


def test_scenario_commit_writes_new_baseline(demo_snapshot_path: Path, tmp_path: Path) -> None:
    runner = CliRunner()
    out = tmp_path / "baseline.json"
    result = runner.invoke(
        app,
        ["scenario", "commit", str(demo_snapshot_path), "S1", "--out-json", str(out)],
        prog_name="kitplan",
    )
    assert result.exit_code == 0, result.stdout
    jobs = json.loads(out.read_text())
    assert [job["id"] for job in jobs] == ["J1", "J2", "J4"]
    assert jobs[0]["expectedJobDuration"] == 1545 + 5250
    assert all(job["overlay"] is None for job in jobs)


def test_unknown_scenario_is_rejected(demo_snapshot_path: Path, tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        app,
        ["scenario", "commit", str(demo_snapshot_path), "S404", "--out-json", str(tmp_path / "x")],
        prog_name="kitplan",
    )
    assert result.exit_code != 0
    assert not (tmp_path / "x").exists()


def test_scenario_list(demo_snapshot_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["scenario", "list", str(demo_snapshot_path)], prog_name="kitplan")
    assert result.exit_code == 0
    assert "S1" in result.stdout
