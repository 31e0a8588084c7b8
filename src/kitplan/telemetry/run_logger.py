"""Context manager for capturing scheduling command telemetry."""

from __future__ import annotations

import time
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping
from uuid import uuid4

from .jsonl import append_jsonl


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(slots=True)
class RunTelemetryLogger(AbstractContextManager["RunTelemetryLogger"]):
    """Record high-level telemetry for a kitplan command run.

    Parameters
    ----------
    log_path:
        JSONL path where run records are appended.
    command:
        Command identifier (e.g., ``"schedule"``, ``"scenario.commit"``).
    snapshot:
        Planning snapshot name.
    snapshot_path:
        Optional filesystem path to the snapshot file.
    scenario_id:
        Scenario the run operated on, if any.
    config:
        Dictionary capturing scheduler settings used by the run.
    context:
        Additional metadata (CLI flags, default date).
    log_events:
        When ``True`` per-job events are written to ``events/<run_id>.jsonl`` next to the log.
    """

    log_path: Path
    command: str
    snapshot: str | None = None
    snapshot_path: str | None = None
    scenario_id: str | None = None
    config: Mapping[str, Any] | None = None
    context: Mapping[str, Any] | None = None
    log_events: bool = False
    schema_version: str = "1.0"
    run_id: str = field(default_factory=lambda: uuid4().hex, init=False)
    _start_time: float = field(default=0.0, init=False)
    _start_timestamp: str | None = field(default=None, init=False)
    _closed: bool = field(default=False, init=False)
    _events_path: Path | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.log_path = Path(self.log_path)
        if self.log_events:
            self._events_path = self.log_path.parent / "events" / f"{self.run_id}.jsonl"

    def __enter__(self) -> "RunTelemetryLogger":
        self._start_time = time.perf_counter()
        self._start_timestamp = _iso_now()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type:
            self._close(status="error", metrics=None, extra=None, error=repr(exc))
            return False
        self._close(status="ok", metrics=None, extra=None, error=None)
        return False

    def log_event(self, event: str, **fields: Any) -> None:
        """Persist a per-job event when event logging is enabled."""
        if not self._events_path:
            return
        record = {
            "record_type": "event",
            "schema_version": self.schema_version,
            "run_id": self.run_id,
            "timestamp": _iso_now(),
            "event": event,
            **fields,
        }
        append_jsonl(self._events_path, record)

    def elapsed(self) -> float:
        """Return the elapsed wall-clock seconds since the run started."""
        return time.perf_counter() - self._start_time

    @property
    def events_path(self) -> Path | None:
        return self._events_path

    def finalize(
        self,
        *,
        status: str = "ok",
        metrics: Mapping[str, Any] | None = None,
        extra: Mapping[str, Any] | None = None,
        error: str | None = None,
    ) -> None:
        """Write the terminal run record."""
        self._close(status=status, metrics=metrics, extra=extra, error=error)

    def _close(
        self,
        *,
        status: str,
        metrics: Mapping[str, Any] | None,
        extra: Mapping[str, Any] | None,
        error: str | None,
    ) -> None:
        if self._closed:
            return
        duration = self.elapsed() if self._start_time else 0.0
        record = {
            "record_type": "run",
            "schema_version": self.schema_version,
            "run_id": self.run_id,
            "command": self.command,
            "snapshot": self.snapshot,
            "snapshot_path": self.snapshot_path,
            "scenario_id": self.scenario_id,
            "status": status,
            "metrics": dict(metrics or {}),
            "config": dict(self.config or {}),
            "context": dict(self.context or {}),
            "extra": dict(extra or {}),
            "error": error,
            "started_at": self._start_timestamp,
            "finished_at": _iso_now(),
            "duration_seconds": round(duration, 3),
        }
        append_jsonl(self.log_path, record)
        self._closed = True


__all__ = ["RunTelemetryLogger"]
