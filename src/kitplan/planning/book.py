"""In-memory scenario book: create scenarios, record cumulative changes, discard, commit.

The book stands in for the persistence boundary. It owns scenarios only; baseline jobs are passed
in as snapshots and commit results are handed back for the caller to persist.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pydantic.alias_generators import to_camel

from kitplan.planning.overlay import (
    CommitResult,
    MaterializeResult,
    commit,
    materialize,
    normalise_change_data,
)
from kitplan.scenario.contract.models import (
    ChangeOperation,
    Delay,
    Job,
    Scenario,
    ScenarioChange,
)
from kitplan.scheduling.timeline import InvalidInputError

__all__ = ["ScenarioBook"]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ScenarioBook:
    """Scenario store with append-only change logs.

    Parameters
    ----------
    scenarios:
        Existing scenarios to seed the book with.
    clock:
        Callable returning naive UTC timestamps (injected for tests).
    id_factory:
        Callable returning fresh identifiers.
    """

    def __init__(
        self,
        scenarios: Iterable[Scenario] = (),
        *,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._scenarios: dict[str, Scenario] = {scenario.id: scenario for scenario in scenarios}
        self._clock = clock or _utc_now
        self._new_id = id_factory or (lambda: uuid4().hex)
        self._commit_lock = threading.Lock()

    @property
    def scenarios(self) -> list[Scenario]:
        return list(self._scenarios.values())

    def get(self, scenario_id: str) -> Scenario:
        try:
            return self._scenarios[scenario_id]
        except KeyError:
            raise KeyError(f"Unknown scenario id: {scenario_id}") from None

    def create(self, name: str, description: str | None = None) -> Scenario:
        now = self._clock()
        scenario = Scenario(
            id=self._new_id(),
            name=name,
            description=description,
            created_at=now,
            updated_at=now,
        )
        self._scenarios[scenario.id] = scenario
        return scenario

    def activate(self, scenario_id: str) -> Scenario:
        """Mark one scenario active; every other scenario becomes inactive."""
        self.get(scenario_id)
        for key, scenario in self._scenarios.items():
            self._scenarios[key] = scenario.model_copy(update={"is_active": key == scenario_id})
        return self._scenarios[scenario_id]

    def active(self) -> Scenario | None:
        return next((s for s in self._scenarios.values() if s.is_active), None)

    def record_change(
        self,
        scenario_id: str,
        operation: ChangeOperation | str,
        *,
        job_id: str | None = None,
        change_data: Mapping[str, Any] | None = None,
        baseline_jobs: Sequence[Job] = (),
    ) -> ScenarioChange:
        """Append a change to a scenario's log.

        For ``MODIFY`` the stored ``change_data`` is cumulative: the union of every earlier MODIFY
        payload for the same job plus ``change_data`` (new values win). A new ``stationCount``
        without its own ``expectedJobDuration`` drops any earlier explicit duration so the job is
        re-timed.
        ``original_data`` snapshots the baseline job when it is among ``baseline_jobs``.
        """

        scenario = self.get(scenario_id)
        operation = ChangeOperation(operation)
        if operation is ChangeOperation.ADD and not change_data:
            raise InvalidInputError("ADD changes need job data")

        payload: dict[str, Any] = {}
        update = _camel_keys(change_data or {})
        if operation is ChangeOperation.MODIFY:
            for previous in scenario.ordered_changes():
                if previous.operation is ChangeOperation.MODIFY and previous.job_id == job_id:
                    payload.update(_camel_keys(previous.change_data))
            # a new station count re-times the job unless it brings its own duration
            if "stationCount" in update and "expectedJobDuration" not in update:
                payload.pop("expectedJobDuration", None)
        payload.update(update)

        original = next((job for job in baseline_jobs if job.id == job_id), None)
        change = ScenarioChange(
            id=self._new_id(),
            job_id=job_id,
            operation=operation,
            change_data=payload,
            original_data=original.model_dump(mode="json", by_alias=True) if original else None,
            created_at=self._clock(),
        )
        self._scenarios[scenario_id] = scenario.model_copy(
            update={"changes": [*scenario.changes, change], "updated_at": change.created_at}
        )
        return change

    def discard(self, scenario_id: str) -> Scenario:
        """Remove a scenario without applying it."""
        scenario = self.get(scenario_id)
        del self._scenarios[scenario_id]
        return scenario

    def materialize(
        self, scenario_id: str, baseline_jobs: Sequence[Job], delays: Iterable[Delay] = ()
    ) -> MaterializeResult:
        delays = list(delays)
        return materialize(
            baseline_jobs,
            self.get(scenario_id),
            production_delays=[delay for delay in delays if delay.is_production],
            scenario_delays=[delay for delay in delays if delay.scenario_id == scenario_id],
        )

    def commit(self, scenario_id: str, baseline_jobs: Sequence[Job]) -> CommitResult:
        """Commit a scenario and drop it from the book.

        Commits are serialised so two scenarios cannot be promoted over the same baseline at once.
        """

        with self._commit_lock:
            result = commit(self.get(scenario_id), baseline_jobs)
            del self._scenarios[scenario_id]
        return result


def _camel_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    known = normalise_change_data(data)
    extras = {key: value for key, value in data.items() if key in ("id",)}
    return {**extras, **{to_camel(name): value for name, value in known.items()}}
