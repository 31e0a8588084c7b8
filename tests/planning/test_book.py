import itertools
from datetime import datetime, timedelta

import pytest

from kitplan.planning import ScenarioBook
from kitplan.planning.durations import build_job
from kitplan.scenario.contract.models import ChangeOperation, Delay, Job
from kitplan.scheduling.timeline import InvalidInputError


def _baseline() -> list[Job]:
    return [
        build_job(
            {
                "id": "J1",
                "jobNumber": "1001",
                "orderedQuantity": 100,
                "routeSteps": [{"name": "Pick", "expectedSeconds": 105}],
                "setup": 600,
                "makeReady": 300,
                "takeDown": 645,
            }
        ),
        build_job({"id": "J2", "jobNumber": "1002", "expectedJobDuration": 3600}),
    ]


def _book() -> ScenarioBook:
    ticks = itertools.count()
    ids = itertools.count(1)
    return ScenarioBook(
        clock=lambda: datetime(2025, 10, 20, 9, 0) + timedelta(minutes=next(ticks)),
        id_factory=lambda: f"id{next(ids)}",
    )


def test_create_and_get():
    book = _book()
    scenario = book.create("More stations", "try two stations")
    assert book.get(scenario.id) is scenario
    assert scenario.created_at == scenario.updated_at
    with pytest.raises(KeyError):
        book.get("unknown")


def test_modify_changes_are_cumulative():
    book = _book()
    scenario = book.create("What-if")
    baseline = _baseline()
    book.record_change(
        scenario.id, "MODIFY", job_id="J1", change_data={"stationCount": 2}, baseline_jobs=baseline
    )
    second = book.record_change(
        scenario.id, ChangeOperation.MODIFY, job_id="J1", change_data={"customer_name": "Acme"}
    )
    assert second.change_data == {"stationCount": 2, "customerName": "Acme"}
    stored = book.get(scenario.id)
    assert [change.id for change in stored.changes] == ["id2", "id3"]
    assert stored.updated_at == second.created_at
    assert stored.changes[0].original_data["jobNumber"] == "1001"


def test_cumulative_data_is_per_job():
    book = _book()
    scenario = book.create("What-if")
    book.record_change(scenario.id, "MODIFY", job_id="J1", change_data={"stationCount": 2})
    other = book.record_change(scenario.id, "MODIFY", job_id="J2", change_data={"setup": 10})
    assert other.change_data == {"setup": 10}


def test_book_materialize_uses_recorded_changes():
    book = _book()
    scenario = book.create("What-if")
    book.record_change(scenario.id, "MODIFY", job_id="J1", change_data={"stationCount": 2})
    book.record_change(scenario.id, "MODIFY", job_id="J1", change_data={"stationCount": 4})
    book.record_change(
        scenario.id,
        "ADD",
        change_data={"id": "J3", "jobNumber": "1003", "expectedJobDuration": 60},
    )
    delays = [
        Delay(id="D1", job_id="J1", name="Prod", duration_seconds=100),
        Delay(id="D2", job_id="J1", name="Mine", duration_seconds=10, scenario_id=scenario.id),
        Delay(id="D3", job_id="J1", name="Theirs", duration_seconds=1, scenario_id="elsewhere"),
    ]
    result = book.materialize(scenario.id, _baseline(), delays)
    assert result.job("J1").expected_job_duration == 1545 + 2625 + 110
    assert result.job("J3").overlay.operation is ChangeOperation.ADD


def test_add_requires_data():
    book = _book()
    scenario = book.create("What-if")
    with pytest.raises(InvalidInputError):
        book.record_change(scenario.id, "ADD")


def test_activate_keeps_single_active():
    book = _book()
    first = book.create("A")
    second = book.create("B")
    book.activate(first.id)
    book.activate(second.id)
    assert book.active().id == second.id
    assert [s.is_active for s in book.scenarios] == [False, True]


def test_discard_and_commit_remove_scenario():
    book = _book()
    kept = book.create("Kept")
    dropped = book.create("Dropped")
    book.discard(dropped.id)
    assert [s.id for s in book.scenarios] == [kept.id]

    book.record_change(kept.id, "DELETE", job_id="J2")
    result = book.commit(kept.id, _baseline())
    assert result.deleted_job_ids == ["J2"]
    assert [job.id for job in result.jobs] == ["J1"]
    assert book.scenarios == []


def test_station_edit_after_explicit_duration_retimes_job():
    book = _book()
    scenario = book.create("What-if")
    book.record_change(
        scenario.id, "MODIFY", job_id="J1", change_data={"expectedJobDuration": 9000}
    )
    second = book.record_change(
        scenario.id, "MODIFY", job_id="J1", change_data={"stationCount": 4}
    )
    assert second.change_data == {"stationCount": 4}

    job = book.materialize(scenario.id, _baseline(), []).job("J1")
    assert job.station_count == 4
    assert job.expected_job_duration == 1545 + 2625


def test_explicit_duration_with_station_edit_is_kept():
    book = _book()
    scenario = book.create("What-if")
    book.record_change(scenario.id, "MODIFY", job_id="J1", change_data={"customerName": "Acme"})
    change = book.record_change(
        scenario.id,
        "MODIFY",
        job_id="J1",
        change_data={"stationCount": 2, "expectedJobDuration": 5000},
    )
    assert change.change_data == {
        "customerName": "Acme",
        "stationCount": 2,
        "expectedJobDuration": 5000,
    }
    assert book.materialize(scenario.id, _baseline(), []).job("J1").expected_job_duration == 5000
