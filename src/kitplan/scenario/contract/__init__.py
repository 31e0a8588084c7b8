"""Scenario contract models (Pydantic schemas, validators)."""

from .models import (
    ChangeOperation,
    Delay,
    InstructionType,
    Job,
    PlanningSnapshot,
    RouteStep,
    Scenario,
    ScenarioChange,
    ScenarioOverlay,
    SchedulerSettings,
    Shift,
)

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
