"""Planning snapshot loading utilities (YAML metadata + CSV/JSON tables)."""

from __future__ import annotations

import json
import math
import re
from pathlib import Path
from typing import cast

import pandas as pd
import yaml
from pydantic import TypeAdapter, ValidationError

from kitplan.planning.durations import build_job
from kitplan.scenario.contract.models import (
    Delay,
    Job,
    PlanningSnapshot,
    Scenario,
    SchedulerSettings,
    Shift,
)
from kitplan.scheduling.timeline import InvalidInputError

__all__ = ["load_snapshot", "load_records", "read_csv", "write_jobs"]

_LIST_COLUMNS = ("allowedShiftIds", "allowed_shift_ids")
_INTEGER_COLUMNS = (
    "breakDuration",
    "order",
    "duration",
    "insertAfter",
    "orderedQuantity",
    "stationCount",
    "expectedKitDuration",
    "expectedJobDuration",
    "setup",
    "makeReady",
    "takeDown",
)


def read_csv(path: Path) -> pd.DataFrame:
    """Load a CSV file using pandas with UTF-8 defaults (time columns stay strings)."""
    return pd.read_csv(
        path,
        dtype={
            "startTime": str,
            "endTime": str,
            "breakStart": str,
            "scheduledStartTime": str,
            "start_time": str,
            "end_time": str,
            "break_start": str,
            "scheduled_start_time": str,
        },
    )


def _is_missing(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, float):
        return math.isnan(value)
    return value is pd.NaT


def _normalise_rows(rows: list[dict[str, object]]) -> list[dict[str, object]]:
    """Drop blank cells, split ``|``/``,`` separated shift lists, and restore integer columns."""
    for row in rows:
        for key in list(row):
            value = row[key]
            if _is_missing(value):
                row.pop(key)
                continue
            if key in _LIST_COLUMNS and isinstance(value, str):
                row[key] = [part.strip() for part in re.split(r"[|,]", value) if part.strip()]
            elif key in _INTEGER_COLUMNS and isinstance(value, float) and value.is_integer():
                # pandas widens integer columns with blanks to float
                row[key] = int(value)
            elif isinstance(value, str):
                row[key] = value.strip()
    return rows


def load_records(path: str | Path) -> list[dict[str, object]]:
    """Read a list of records from CSV, JSON or YAML."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return _normalise_rows(cast(list[dict[str, object]], read_csv(path).to_dict("records")))
    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle) if suffix == ".json" else yaml.safe_load(handle)
    if data is None:
        return []
    if not isinstance(data, list):
        raise InvalidInputError(f"{path} must contain a list of records")
    return data


def load_snapshot(path: str | Path) -> PlanningSnapshot:
    """Load shifts, jobs, delays, scenarios and settings into a :class:`PlanningSnapshot`.

    Parameters
    ----------
    path:
        ``snapshot.yaml`` (or ``.json``) describing the planning state. Tables are either inline
        under their key (``shifts``, ``jobs``, ``delays``, ``scenarios``) or referenced by path in
        a ``data`` section, relative to the snapshot file. ``settings`` holds
        :class:`SchedulerSettings` overrides.

    Returns
    -------
    PlanningSnapshot
        Validated snapshot. Job durations missing from the input are derived from route steps,
        quantity, overhead and station count.

    Raises
    ------
    FileNotFoundError
        If a referenced table does not exist.
    InvalidInputError
        If any record fails validation.
    """

    base_path = Path(path).resolve()
    with base_path.open("r", encoding="utf-8") as handle:
        if base_path.suffix.lower() == ".json":
            meta = json.load(handle)
        else:
            meta = yaml.safe_load(handle)
    meta = meta or {}
    root = base_path.parent
    data_section = meta.get("data") or {}

    def require(name: str) -> Path:
        candidate = root / data_section[name]
        if not candidate.exists():
            raise FileNotFoundError(candidate)
        return candidate

    def table(name: str) -> list[dict[str, object]]:
        if name in data_section:
            return load_records(require(name))
        return list(meta.get(name) or [])

    try:
        shifts = TypeAdapter(list[Shift]).validate_python(table("shifts"))
        jobs = [build_job(record) for record in table("jobs")]
        delays = TypeAdapter(list[Delay]).validate_python(table("delays"))
        scenarios = TypeAdapter(list[Scenario]).validate_python(table("scenarios"))
        settings = TypeAdapter(SchedulerSettings).validate_python(meta.get("settings") or {})
        return PlanningSnapshot(
            name=meta.get("name", base_path.stem),
            shifts=shifts,
            jobs=jobs,
            delays=delays,
            scenarios=scenarios,
            settings=settings,
        )
    except ValidationError as exc:
        raise InvalidInputError(f"{base_path}: {exc}") from exc


def write_jobs(path: str | Path, jobs: list[Job]) -> Path:
    """Write jobs as a camelCase JSON list (the format :func:`load_records` reads back)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [job.model_dump(mode="json", by_alias=True) for job in jobs]
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    return path
