"""Planning utilities layered on top of the shift-aware scheduler.

This package houses duration arithmetic (delays, station-count re-timing), the scenario overlay
engine (materialize/commit over an append-only change log), due-date priority and reporting
frames. Modules provide library-friendly entry points that the CLI reuses.
"""

from kitplan.planning.book import ScenarioBook
from kitplan.planning.durations import (
    apply_delays,
    apply_production_delays,
    build_job,
    expected_job_duration,
    expected_kit_duration,
    format_duration,
    recalculate_duration,
)
from kitplan.planning.overlay import (
    CommitResult,
    MaterializeResult,
    SkippedEntry,
    SkipReason,
    commit,
    deep_clone_jobs,
    materialize,
    normalise_change_data,
)
from kitplan.planning.priority import JobPriority, is_late, is_overdue, job_priority
from kitplan.planning.reporting import (
    ScenarioComparison,
    compare_scenario,
    schedules_dataframe,
    segments_dataframe,
)

__all__ = [
    "ScenarioBook",
    "apply_delays",
    "apply_production_delays",
    "build_job",
    "expected_job_duration",
    "expected_kit_duration",
    "format_duration",
    "recalculate_duration",
    "CommitResult",
    "MaterializeResult",
    "SkippedEntry",
    "SkipReason",
    "commit",
    "deep_clone_jobs",
    "materialize",
    "normalise_change_data",
    "JobPriority",
    "is_late",
    "is_overdue",
    "job_priority",
    "ScenarioComparison",
    "compare_scenario",
    "schedules_dataframe",
    "segments_dataframe",
]
