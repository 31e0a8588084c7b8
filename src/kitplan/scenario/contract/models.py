"""Pydantic models describing kitplan inputs (shifts, jobs, delays, scenarios)."""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from kitplan.scheduling.timeline import (
    InvalidInputError,
    ShiftGeometry,
    TimeOfDay,
    build_shift_geometry,
    normalise_time_string,
)

_RECORD_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _as_naive_utc(value: datetime | None) -> datetime | None:
    # change logs mix client (aware) and server (naive UTC) timestamps; compare them as naive UTC
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _time_or_reject(value: str) -> str:
    try:
        return normalise_time_string(value)
    except InvalidInputError as exc:
        raise ValueError(str(exc)) from exc


class Shift(BaseModel):
    """Recurring daily work window with an optional break.

    Attributes
    ----------
    id:
        Unique shift identifier (referenced by ``Job.allowed_shift_ids``).
    start_time / end_time:
        ``"HH:MM"`` strings. ``end_time <= start_time`` denotes an overnight shift.
    break_start / break_duration_minutes:
        Optional break carved out of the shift span (JSON field ``breakDuration``).
    is_active:
        Globally active flag; inactive shifts only schedule under ``ignore_active_flag``.
    order:
        Display and tie-break ordering.
    """

    model_config = _RECORD_CONFIG

    id: str
    name: str
    start_time: str
    end_time: str
    break_start: str | None = None
    break_duration_minutes: int | None = Field(default=None, alias="breakDuration")
    color: str | None = None
    is_active: bool = True
    order: int = 0

    @field_validator("start_time", "end_time")
    @classmethod
    def _valid_time(cls, value: str) -> str:
        return _time_or_reject(value)

    @field_validator("break_start")
    @classmethod
    def _valid_break_start(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return _time_or_reject(value)

    @field_validator("break_duration_minutes")
    @classmethod
    def _break_non_negative(cls, value: int | None) -> int | None:
        if value is not None and value < 0:
            raise ValueError("Shift.break_duration_minutes must be non-negative")
        return value

    @model_validator(mode="after")
    def _break_inside_span(self) -> Shift:
        try:
            self.geometry()
        except InvalidInputError as exc:
            raise ValueError(f"Shift {self.id}: {exc}") from exc
        return self

    def geometry(self) -> ShiftGeometry:
        """Return the parsed window geometry (span + break)."""
        return build_shift_geometry(
            self.start_time, self.end_time, self.break_start, self.break_duration_minutes
        )

    @property
    def is_overnight(self) -> bool:
        return TimeOfDay.parse(self.end_time).minutes <= TimeOfDay.parse(self.start_time).minutes


class InstructionType(str, Enum):
    NONE = "NONE"
    VIDEO = "VIDEO"
    IMAGE = "IMAGE"
    TEXT = "TEXT"


class RouteStep(BaseModel):
    """Named sub-step of a kit with its expected duration (seconds)."""

    model_config = _RECORD_CONFIG

    name: str
    expected_seconds: int
    order: int | None = None
    id: str | None = None
    instruction_type: InstructionType = InstructionType.NONE

    @field_validator("expected_seconds")
    @classmethod
    def _seconds_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("RouteStep.expected_seconds must be non-negative")
        return value


class ChangeOperation(str, Enum):
    ADD = "ADD"
    MODIFY = "MODIFY"
    DELETE = "DELETE"


class ScenarioOverlay(BaseModel):
    """Tag attached to jobs produced by scenario materialization."""

    model_config = _RECORD_CONFIG

    scenario_id: str
    scenario_name: str
    operation: ChangeOperation
    deleted: bool = False


class Job(BaseModel):
    """Kitting job as supplied by the persistence layer.

    ``expected_job_duration`` (seconds) is the amount of productive time the scheduler consumes;
    ``setup``, ``make_ready`` and ``take_down`` form the fixed overhead that does not scale with
    ``station_count``.
    """

    model_config = _RECORD_CONFIG

    id: str
    job_number: str
    customer_name: str = ""
    description: str = ""
    ordered_quantity: int = 0
    station_count: int = 1
    expected_kit_duration: int = 0
    expected_job_duration: int
    route_steps: list[RouteStep] = Field(default_factory=list)
    setup: int = 0
    make_ready: int = 0
    take_down: int = 0
    allowed_shift_ids: list[str] = Field(default_factory=list)
    include_weekends: bool = False
    scheduled_date: date | None = None
    scheduled_start_time: str | None = None
    due_date: datetime | None = None
    status: str = "scheduled"
    overlay: ScenarioOverlay | None = None

    @field_validator(
        "ordered_quantity",
        "expected_kit_duration",
        "expected_job_duration",
        "setup",
        "make_ready",
        "take_down",
    )
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("Job duration and quantity fields must be non-negative")
        return value

    @field_validator("station_count")
    @classmethod
    def _stations_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Job.station_count must be >= 1")
        return value

    @field_validator("scheduled_date", mode="before")
    @classmethod
    def _date_part_only(cls, value: object) -> object:
        # persistence hands out ISO timestamps ("2025-10-27T00:00:00.000Z") for date columns
        if isinstance(value, str) and "T" in value:
            return value.split("T", 1)[0]
        if isinstance(value, datetime):
            return value.date()
        return value

    @field_validator("due_date", mode="before")
    @classmethod
    def _due_date_midnight(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
            if len(value) == 10:
                # a bare due date means midnight UTC of that day
                value = date.fromisoformat(value)
        if isinstance(value, date) and not isinstance(value, datetime):
            return datetime.combine(value, datetime.min.time())
        return value

    @field_validator("due_date")
    @classmethod
    def _naive_due_date(cls, value: datetime | None) -> datetime | None:
        return _as_naive_utc(value)

    @field_validator("scheduled_start_time")
    @classmethod
    def _valid_start_time(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return _time_or_reject(value)

    @field_validator("allowed_shift_ids")
    @classmethod
    def _dedupe_shift_ids(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))

    @model_validator(mode="after")
    def _order_route_steps(self) -> Job:
        for index, step in enumerate(self.route_steps):
            if step.order is None:
                step.order = index
        return self

    @property
    def fixed_overhead(self) -> int:
        """Setup + make-ready + take-down seconds (independent of station count)."""
        return self.setup + self.make_ready + self.take_down

    @property
    def is_scenario_deleted(self) -> bool:
        return self.overlay is not None and self.overlay.deleted


class Delay(BaseModel):
    """Named delay inserted into a job.

    ``scenario_id`` of ``None`` marks a production delay that applies to the baseline job and to
    every scenario view of it.
    """

    model_config = _RECORD_CONFIG

    id: str
    job_id: str
    name: str
    duration_seconds: int = Field(alias="duration")
    insert_after_step_order: int = Field(default=0, alias="insertAfter")
    scenario_id: str | None = None

    @field_validator("duration_seconds")
    @classmethod
    def _duration_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Delay.duration_seconds must be > 0")
        return value

    @field_validator("insert_after_step_order")
    @classmethod
    def _step_order_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("Delay.insert_after_step_order must be >= 0")
        return value

    @property
    def is_production(self) -> bool:
        return self.scenario_id is None


class ScenarioChange(BaseModel):
    """Immutable change-log entry of a scenario.

    ``change_data`` is cumulative: a later MODIFY for the same job already contains every field
    known from earlier edits, so replay in creation order is last-write-wins per field.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    operation: ChangeOperation
    change_data: dict[str, Any] = Field(default_factory=dict)
    job_id: str | None = None
    original_data: dict[str, Any] | None = None
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _naive_created_at(cls, value: datetime) -> datetime:
        return _as_naive_utc(value)

    @model_validator(mode="after")
    def _job_id_required(self) -> ScenarioChange:
        if self.operation is not ChangeOperation.ADD and not self.job_id:
            raise ValueError(f"ScenarioChange {self.id}: {self.operation.value} requires job_id")
        return self


class Scenario(BaseModel):
    """Named what-if variant expressed purely as an ordered change log."""

    model_config = _RECORD_CONFIG

    id: str
    name: str
    description: str | None = None
    is_active: bool = False
    changes: list[ScenarioChange] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("created_at", "updated_at")
    @classmethod
    def _naive_timestamps(cls, value: datetime | None) -> datetime | None:
        return _as_naive_utc(value)

    def ordered_changes(self) -> list[ScenarioChange]:
        """Return changes sorted by ``created_at`` (stable for equal timestamps)."""
        return sorted(self.changes, key=lambda change: change.created_at)

    def job_ids(self) -> set[str]:
        """Job ids touched by MODIFY/DELETE changes."""
        return {change.job_id for change in self.changes if change.job_id}


class SchedulerSettings(BaseModel):
    """Tunable scheduler configuration.

    Attributes
    ----------
    max_horizon_days:
        Upper bound on calendar days the forward scheduler walks before giving up.
    default_start_time:
        Start time used for jobs without ``scheduled_start_time``.
    weekend_days:
        Weekday numbers (``0`` = Monday) treated as weekend.
    """

    model_config = _RECORD_CONFIG

    max_horizon_days: int = 400
    default_start_time: str = "08:00"
    weekend_days: tuple[int, ...] = (5, 6)

    @field_validator("max_horizon_days")
    @classmethod
    def _horizon_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("SchedulerSettings.max_horizon_days must be >= 1")
        return value

    @field_validator("default_start_time")
    @classmethod
    def _valid_default_time(cls, value: str) -> str:
        return _time_or_reject(value)

    @field_validator("weekend_days")
    @classmethod
    def _valid_weekdays(cls, value: tuple[int, ...]) -> tuple[int, ...]:
        if any(day < 0 or day > 6 for day in value):
            raise ValueError("weekend_days entries must be in 0..6 (Monday=0)")
        return tuple(sorted(set(value)))


class PlanningSnapshot(BaseModel):
    """Everything a computation needs, loaded together from disk or persistence."""

    model_config = _RECORD_CONFIG

    name: str = "snapshot"
    shifts: list[Shift] = Field(default_factory=list)
    jobs: list[Job] = Field(default_factory=list)
    delays: list[Delay] = Field(default_factory=list)
    scenarios: list[Scenario] = Field(default_factory=list)
    settings: SchedulerSettings = Field(default_factory=SchedulerSettings)

    @model_validator(mode="after")
    def _unique_ids(self) -> PlanningSnapshot:
        for label, ids in (
            ("shift", [shift.id for shift in self.shifts]),
            ("job", [job.id for job in self.jobs]),
            ("scenario", [scenario.id for scenario in self.scenarios]),
        ):
            seen: set[str] = set()
            for item in ids:
                if item in seen:
                    raise ValueError(f"Duplicate {label} id: {item}")
                seen.add(item)
        return self

    def scenario(self, scenario_id: str) -> Scenario:
        """Return the scenario with ``scenario_id`` (``KeyError`` if unknown)."""
        for scenario in self.scenarios:
            if scenario.id == scenario_id:
                return scenario
        raise KeyError(f"Unknown scenario id: {scenario_id}")

    def production_delays(self) -> list[Delay]:
        return [delay for delay in self.delays if delay.is_production]

    def scenario_delays(self, scenario_id: str) -> list[Delay]:
        return [delay for delay in self.delays if delay.scenario_id == scenario_id]


__all__ = [
    "Shift",
    "InstructionType",
    "RouteStep",
    "ChangeOperation",
    "ScenarioOverlay",
    "Job",
    "Delay",
    "ScenarioChange",
    "Scenario",
    "SchedulerSettings",
    "PlanningSnapshot",
]
