"""CLI helper utilities for kitplan."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import typer

from kitplan.scenario.contract.models import PlanningSnapshot
from kitplan.scenario.io import load_snapshot
from kitplan.scheduling.timeline import InvalidInputError

__all__ = ["load_snapshot_or_fail", "parse_date_option"]


def load_snapshot_or_fail(path: Path, max_days: int | None = None) -> PlanningSnapshot:
    """Load a snapshot, converting input errors into ``typer.BadParameter``."""
    try:
        snapshot = load_snapshot(path)
    except (FileNotFoundError, InvalidInputError) as exc:
        raise typer.BadParameter(str(exc)) from exc
    if max_days is not None:
        settings = snapshot.settings.model_copy(update={"max_horizon_days": max_days})
        snapshot = snapshot.model_copy(update={"settings": settings})
    return snapshot


def parse_date_option(value: str | None) -> date | None:
    """Parse ``YYYY-MM-DD`` (``None`` passes through)."""
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid date {value!r}; expected YYYY-MM-DD") from exc
