from datetime import datetime

import pytest

from kitplan.telemetry import RunTelemetryLogger, append_jsonl, read_jsonl


def test_run_logger_writes_run_record(tmp_path):
    log_path = tmp_path / "telemetry" / "runs.jsonl"
    with RunTelemetryLogger(
        log_path=log_path,
        command="schedule",
        snapshot="demo",
        config={"max_horizon_days": 400},
        log_events=True,
    ) as logger:
        logger.log_event("job_scheduled", job_id="J1", end="2025-10-27T11:20:45")
        logger.finalize(metrics={"jobs": 1})

    (record,) = read_jsonl(log_path)
    assert record["record_type"] == "run"
    assert record["command"] == "schedule"
    assert record["status"] == "ok"
    assert record["metrics"] == {"jobs": 1}
    assert record["config"] == {"max_horizon_days": 400}

    (event,) = read_jsonl(logger.events_path)
    assert event["run_id"] == record["run_id"]
    assert event["job_id"] == "J1"


def test_run_logger_records_errors(tmp_path):
    log_path = tmp_path / "runs.jsonl"
    with pytest.raises(RuntimeError):
        with RunTelemetryLogger(log_path=log_path, command="scenario.commit"):
            raise RuntimeError("boom")
    (record,) = read_jsonl(log_path)
    assert record["status"] == "error"
    assert "boom" in record["error"]


def test_events_disabled_by_default(tmp_path):
    logger = RunTelemetryLogger(log_path=tmp_path / "runs.jsonl", command="schedule")
    logger.log_event("ignored")
    assert logger.events_path is None
    assert not (tmp_path / "events").exists()


def test_append_jsonl_serialises_datetimes(tmp_path):
    path = tmp_path / "records.jsonl"
    append_jsonl(path, {"at": datetime(2025, 10, 27, 8, 0)})
    append_jsonl(path, {"n": 2})
    assert read_jsonl(path) == [{"at": "2025-10-27 08:00:00"}, {"n": 2}]
