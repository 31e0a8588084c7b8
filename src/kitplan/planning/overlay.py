"""Scenario overlay engine: replay a scenario's change log over a cloned baseline.

The baseline job list (Y) is never mutated. Each materialization works on its own deep clone, so
any number of scenarios (Ŷ) can be materialized against the same baseline concurrently.

Replay rules
------------
* Changes replay in ``created_at`` order (stable for ties).
* ``ADD`` appends a new job built from ``change_data``.
* ``MODIFY`` shallow-merges ``change_data`` onto the current job (last write wins per field).
  A ``stationCount`` in the change re-derives the duration from the *original* job, never from
  an already re-timed copy, so repeated station edits do not compound. An explicit
  ``expectedJobDuration`` in the same change overrides the derived value.
* ``DELETE`` keeps the job and tags it as deleted for ghosting.
* Changes or delays naming unknown jobs are skipped and reported.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from kitplan.planning.durations import apply_delays, build_job, recalculate_duration
from kitplan.scenario.contract.models import (
    ChangeOperation,
    Delay,
    Job,
    Scenario,
    ScenarioChange,
    ScenarioOverlay,
)
from kitplan.scheduling.timeline import InvalidInputError

__all__ = [
    "SkipReason",
    "SkippedEntry",
    "MaterializeResult",
    "CommitResult",
    "deep_clone_jobs",
    "normalise_change_data",
    "materialize",
    "commit",
]

_PROTECTED_FIELDS = frozenset({"id", "overlay"})


def _field_lookup() -> dict[str, str]:
    lookup: dict[str, str] = {}
    for name, info in Job.model_fields.items():
        lookup[name] = name
        lookup[to_camel(name)] = name
        if info.alias:
            lookup[info.alias] = name
    return lookup


_JOB_FIELDS = _field_lookup()


class SkipReason(str, Enum):
    DANGLING_JOB = "dangling_job"
    DUPLICATE_JOB_ID = "duplicate_job_id"


@dataclass(frozen=True, slots=True)
class SkippedEntry:
    """Change-log entry or delay that could not be applied."""

    kind: str
    entry_id: str
    job_id: str | None
    reason: SkipReason

    def describe(self) -> str:
        return f"{self.kind} {self.entry_id} (job {self.job_id}): {self.reason.value}"


@dataclass(slots=True)
class MaterializeResult:
    """Jobs touched by a scenario (the Ŷ overlay) plus skipped entries."""

    scenario_id: str
    jobs: list[Job]
    skipped: list[SkippedEntry] = field(default_factory=list)

    def job(self, job_id: str) -> Job:
        return next(job for job in self.jobs if job.id == job_id)


@dataclass(slots=True)
class CommitResult:
    """New baseline after promoting a scenario.

    Attributes
    ----------
    scenario_id:
        Scenario that was committed; callers discard it afterwards.
    jobs:
        Complete new baseline job list (untagged).
    modified_job_ids / added_job_ids / deleted_job_ids:
        Jobs whose baseline version changed, by effect.
    skipped:
        Changes that referenced jobs missing from the baseline.
    """

    scenario_id: str
    jobs: list[Job]
    modified_job_ids: list[str] = field(default_factory=list)
    added_job_ids: list[str] = field(default_factory=list)
    deleted_job_ids: list[str] = field(default_factory=list)
    skipped: list[SkippedEntry] = field(default_factory=list)

    @property
    def applied_job_ids(self) -> list[str]:
        return [*self.modified_job_ids, *self.added_job_ids, *self.deleted_job_ids]


def deep_clone_jobs(jobs: Iterable[Job]) -> list[Job]:
    """Structural deep copy: no nested list/model is shared with the input jobs."""
    return [job.model_copy(deep=True) for job in jobs]


def normalise_change_data(change_data: Mapping[str, Any]) -> dict[str, Any]:
    """Map camelCase or snake_case job keys onto field names (deep-copied values).

    Unknown keys, ``id`` and ``overlay`` are dropped.
    """

    normalised: dict[str, Any] = {}
    for key, value in change_data.items():
        name = _JOB_FIELDS.get(key)
        if name is None or name in _PROTECTED_FIELDS:
            continue
        normalised[name] = copy.deepcopy(value)
    return normalised


@dataclass(slots=True)
class _Replay:
    scenario: Scenario
    working: dict[str, Job]
    originals: dict[str, Job]
    skipped: list[SkippedEntry] = field(default_factory=list)

    def tag(self, operation: ChangeOperation, *, deleted: bool = False) -> ScenarioOverlay:
        return ScenarioOverlay(
            scenario_id=self.scenario.id,
            scenario_name=self.scenario.name,
            operation=operation,
            deleted=deleted,
        )

    def skip(self, change: ScenarioChange, reason: SkipReason, job_id: str | None) -> None:
        self.skipped.append(SkippedEntry("change", change.id, job_id, reason))

    def add(self, change: ScenarioChange) -> None:
        record = copy.deepcopy(dict(change.change_data))
        record.setdefault("id", change.id)
        record.pop("overlay", None)
        job = build_job(record)
        if job.id in self.working:
            self.skip(change, SkipReason.DUPLICATE_JOB_ID, job.id)
            return
        job.overlay = self.tag(ChangeOperation.ADD)
        self.working[job.id] = job
        self.originals[job.id] = job

    def modify(self, change: ScenarioChange) -> None:
        job_id = change.job_id or ""
        current = self.working.get(job_id)
        if current is None:
            self.skip(change, SkipReason.DANGLING_JOB, job_id)
            return
        updates = normalise_change_data(change.change_data)
        merged = current.model_dump()
        merged.update(updates)
        if "station_count" in updates and "expected_job_duration" not in updates:
            try:
                stations = int(updates["station_count"])
            except (TypeError, ValueError) as exc:
                raise InvalidInputError(
                    f"change {change.id}: invalid stationCount {updates['station_count']!r}"
                ) from exc
            retimed = recalculate_duration(self.originals[job_id], stations)
            merged["expected_job_duration"] = retimed.expected_job_duration
        previous = current.overlay
        operation = (
            ChangeOperation.ADD
            if previous is not None and previous.operation is ChangeOperation.ADD
            else ChangeOperation.MODIFY
        )
        merged["overlay"] = self.tag(operation, deleted=previous.deleted if previous else False)
        try:
            self.working[job_id] = Job.model_validate(merged)
        except ValidationError as exc:
            raise InvalidInputError(f"change {change.id}: invalid job fields: {exc}") from exc

    def delete(self, change: ScenarioChange) -> None:
        job_id = change.job_id or ""
        current = self.working.get(job_id)
        if current is None:
            self.skip(change, SkipReason.DANGLING_JOB, job_id)
            return
        self.working[job_id] = current.model_copy(
            update={"overlay": self.tag(ChangeOperation.DELETE, deleted=True)}
        )


def _replay(baseline_jobs: Sequence[Job], scenario: Scenario) -> _Replay:
    clones = deep_clone_jobs(baseline_jobs)
    working: dict[str, Job] = {}
    for job in clones:
        if job.id in working:
            raise InvalidInputError(f"duplicate baseline job id: {job.id}")
        working[job.id] = job
    # read-only: recalculation always starts from these
    originals = {job.id: job for job in baseline_jobs}
    state = _Replay(scenario=scenario, working=working, originals=originals)

    handlers = {
        ChangeOperation.ADD: state.add,
        ChangeOperation.MODIFY: state.modify,
        ChangeOperation.DELETE: state.delete,
    }
    for change in scenario.ordered_changes():
        handlers[change.operation](change)
    return state


def _relevant_delays(scenario: Scenario, delays: Iterable[Delay]) -> list[Delay]:
    seen: set[str] = set()
    relevant: list[Delay] = []
    for delay in delays:
        if delay.scenario_id not in (None, scenario.id) or delay.id in seen:
            continue
        seen.add(delay.id)
        relevant.append(delay)
    return relevant


def materialize(
    baseline_jobs: Sequence[Job],
    scenario: Scenario,
    production_delays: Iterable[Delay] = (),
    scenario_delays: Iterable[Delay] = (),
) -> MaterializeResult:
    """Build the what-if view of ``scenario`` over ``baseline_jobs``.

    Parameters
    ----------
    baseline_jobs:
        Baseline (Y) jobs. Never mutated.
    scenario:
        Scenario whose change log is replayed.
    production_delays:
        Delays with ``scenario_id is None``; they apply on top of scenario changes.
    scenario_delays:
        Delays belonging to ``scenario``. Delays of other scenarios are ignored.

    Returns
    -------
    MaterializeResult
        Only jobs tagged by this scenario (added, modified or soft-deleted), with delays applied,
        plus any skipped changes/delays.

    Raises
    ------
    InvalidInputError
        If a change carries job fields that fail validation.
    """

    state = _replay(baseline_jobs, scenario)
    delays = _relevant_delays(scenario, [*production_delays, *scenario_delays])
    for delay in delays:
        if delay.job_id not in state.working:
            state.skipped.append(
                SkippedEntry("delay", delay.id, delay.job_id, SkipReason.DANGLING_JOB)
            )

    overlay_jobs = [
        apply_delays(job, delays)
        for job in state.working.values()
        if job.overlay is not None and job.overlay.scenario_id == scenario.id
    ]
    return MaterializeResult(scenario_id=scenario.id, jobs=overlay_jobs, skipped=state.skipped)


def commit(scenario: Scenario, baseline_jobs: Sequence[Job]) -> CommitResult:
    """Promote ``scenario`` into a new baseline job list.

    Modified jobs replace their baseline version, soft-deleted jobs are removed and added jobs are
    appended. Changes naming jobs absent from the baseline are skipped and reported. The input list
    is left untouched; persisting the returned jobs and discarding the scenario is up to the
    caller.
    """

    state = _replay(baseline_jobs, scenario)
    baseline_ids = {job.id for job in baseline_jobs}
    result = CommitResult(scenario_id=scenario.id, jobs=[], skipped=state.skipped)
    for job in state.working.values():
        overlay = job.overlay
        if overlay is None or overlay.scenario_id != scenario.id:
            result.jobs.append(job)
            continue
        if overlay.deleted:
            # jobs added and deleted within the same scenario never reach the baseline
            if job.id in baseline_ids:
                result.deleted_job_ids.append(job.id)
            continue
        if job.id in baseline_ids:
            result.modified_job_ids.append(job.id)
        else:
            result.added_job_ids.append(job.id)
        result.jobs.append(job.model_copy(update={"overlay": None}))
    return result
