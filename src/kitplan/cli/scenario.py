"""Scenario-related CLI commands (materialize, compare, commit)."""

from __future__ import annotations

import warnings
from contextlib import nullcontext
from pathlib import Path
from typing import Annotated

import pandas as pd
import typer
from rich.console import Console
from rich.table import Table

from kitplan.cli._utils import load_snapshot_or_fail, parse_date_option
from kitplan.planning import (
    SkippedEntry,
    apply_production_delays,
    commit,
    compare_scenario,
    format_duration,
    materialize,
)
from kitplan.scenario.contract.models import PlanningSnapshot, Scenario
from kitplan.scenario.io import write_jobs
from kitplan.scheduling.forward import NoShiftsConfiguredWarning
from kitplan.scheduling.timeline import InvalidInputError
from kitplan.telemetry import RunTelemetryLogger

console = Console()
scenario_app = typer.Typer(add_completion=False, no_args_is_help=True)

SnapshotArg = Annotated[Path, typer.Argument(help="Path to snapshot YAML/JSON file.")]
ScenarioArg = Annotated[str, typer.Argument(help="Scenario id.")]
TelemetryOpt = Annotated[
    Path | None,
    typer.Option(
        "--telemetry-log",
        help="Append run telemetry to a JSONL file.",
        writable=True,
        dir_okay=False,
    ),
]


def _scenario_or_fail(snapshot: PlanningSnapshot, scenario_id: str) -> Scenario:
    try:
        return snapshot.scenario(scenario_id)
    except KeyError as exc:
        raise typer.BadParameter(f"Unknown scenario id: {scenario_id}") from exc


def _stamp(value: object) -> str:
    if value is None or pd.isna(value):
        return "-"
    return f"{pd.Timestamp(value):%Y-%m-%d %H:%M}"


def _late(value: object) -> str:
    if value is None or pd.isna(value):
        return "-"
    return "[red]late[/]" if value else "on time"


def _print_skipped(skipped: list[SkippedEntry]) -> None:
    if skipped:
        console.print(
            "[yellow]Skipped entries:[/]\n- " + "\n- ".join(entry.describe() for entry in skipped)
        )


def _telemetry(
    telemetry_log: Path | None, command: str, snapshot: PlanningSnapshot, path: Path, scenario_id: str
) -> RunTelemetryLogger | None:
    if not telemetry_log:
        return None
    return RunTelemetryLogger(
        log_path=telemetry_log,
        command=command,
        snapshot=snapshot.name,
        snapshot_path=str(path),
        scenario_id=scenario_id,
        config=snapshot.settings.model_dump(mode="json"),
    )


@scenario_app.command("list")
def list_scenarios(snapshot_path: SnapshotArg) -> None:
    """List scenarios and the size of their change logs."""
    snapshot = load_snapshot_or_fail(snapshot_path)
    table = Table(title=f"Scenarios: {snapshot.name}")
    for column in ("ID", "Name", "Active", "Changes", "Jobs touched"):
        table.add_column(column)
    for scenario in snapshot.scenarios:
        table.add_row(
            scenario.id,
            scenario.name,
            "yes" if scenario.is_active else "no",
            str(len(scenario.changes)),
            str(len(scenario.job_ids())),
        )
    console.print(table)


@scenario_app.command("materialize")
def materialize_scenario(
    snapshot_path: SnapshotArg,
    scenario_id: ScenarioArg,
    out_json: Annotated[
        Path | None,
        typer.Option("--out-json", help="Optional path to write the scenario jobs as JSON."),
    ] = None,
    telemetry_log: TelemetryOpt = None,
) -> None:
    """Replay a scenario's change log over the baseline and show the touched jobs."""
    snapshot = load_snapshot_or_fail(snapshot_path)
    scenario = _scenario_or_fail(snapshot, scenario_id)
    logger = _telemetry(telemetry_log, "scenario.materialize", snapshot, snapshot_path, scenario_id)

    with (logger if logger else nullcontext()) as run_logger:
        try:
            result = materialize(
                snapshot.jobs,
                scenario,
                production_delays=snapshot.production_delays(),
                scenario_delays=snapshot.scenario_delays(scenario_id),
            )
        except InvalidInputError as exc:
            raise typer.BadParameter(str(exc)) from exc

        table = Table(title=f"Scenario {scenario.name}")
        for column in ("Job", "Operation", "Stations", "Duration"):
            table.add_column(column)
        for job in result.jobs:
            overlay = job.overlay
            operation = overlay.operation.value if overlay else "-"
            if job.is_scenario_deleted:
                operation = "DELETE (ghost)"
            table.add_row(
                job.job_number,
                operation,
                str(job.station_count),
                format_duration(job.expected_job_duration),
            )
        console.print(table)
        _print_skipped(result.skipped)

        if out_json:
            write_jobs(out_json, result.jobs)
            console.print(f"Wrote scenario jobs to {out_json}")
        if run_logger is not None:
            run_logger.finalize(metrics={"jobs": len(result.jobs), "skipped": len(result.skipped)})


@scenario_app.command("compare")
def compare(
    snapshot_path: SnapshotArg,
    scenario_id: ScenarioArg,
    default_date: Annotated[
        str | None,
        typer.Option("--date", help="Date (YYYY-MM-DD) for jobs without scheduledDate."),
    ] = None,
    include_inactive: Annotated[
        bool,
        typer.Option("--include-inactive", help="Treat inactive shifts as eligible."),
    ] = False,
    max_days: Annotated[
        int | None, typer.Option("--max-days", help="Override the scheduler horizon.", min=1)
    ] = None,
    out_csv: Annotated[
        Path | None,
        typer.Option("--out-csv", help="Optional path to write the comparison as CSV."),
    ] = None,
    telemetry_log: TelemetryOpt = None,
) -> None:
    """Schedule baseline and scenario versions of the touched jobs side by side."""
    snapshot = load_snapshot_or_fail(snapshot_path, max_days)
    scenario = _scenario_or_fail(snapshot, scenario_id)
    day = parse_date_option(default_date)
    logger = _telemetry(telemetry_log, "scenario.compare", snapshot, snapshot_path, scenario_id)

    with (logger if logger else nullcontext()) as run_logger:
        try:
            overlay = materialize(
                snapshot.jobs,
                scenario,
                production_delays=snapshot.production_delays(),
                scenario_delays=snapshot.scenario_delays(scenario_id),
            )
        except InvalidInputError as exc:
            raise typer.BadParameter(str(exc)) from exc
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", NoShiftsConfiguredWarning)
            comparison = compare_scenario(
                scenario_id,
                apply_production_delays(snapshot.jobs, snapshot.delays),
                overlay.jobs,
                snapshot.shifts,
                snapshot.settings,
                default_date=day,
                ignore_active_flag=include_inactive,
            )

        frame = comparison.frame
        table = Table(title=f"Baseline vs. {scenario.name}")
        for column in (
            "Job",
            "Operation",
            "Baseline end",
            "Scenario end",
            "Delta",
            "Due",
            "Baseline",
            "Scenario",
        ):
            table.add_column(column)
        for row in frame.itertuples(index=False):
            delta = "-"
            if not pd.isna(row.delta_seconds):
                delta = format_duration(abs(row.delta_seconds))
                if row.delta_seconds < 0:
                    delta = f"-{delta}"
            table.add_row(
                str(row.job_number),
                "DELETE" if row.deleted else str(row.operation),
                _stamp(row.baseline_end),
                _stamp(row.scenario_end),
                delta,
                _stamp(row.due_date),
                _late(row.baseline_late),
                _late(row.scenario_late),
            )
        console.print(table)
        _print_skipped(overlay.skipped)

        if out_csv:
            out_csv.parent.mkdir(parents=True, exist_ok=True)
            frame.to_csv(out_csv, index=False)
            console.print(f"Wrote comparison to {out_csv}")
        if run_logger is not None:
            run_logger.finalize(metrics={"jobs": len(frame)})


@scenario_app.command("commit")
def commit_scenario(
    snapshot_path: SnapshotArg,
    scenario_id: ScenarioArg,
    out_json: Annotated[
        Path,
        typer.Option("--out-json", help="Path to write the new baseline jobs as JSON."),
    ],
    telemetry_log: TelemetryOpt = None,
) -> None:
    """Promote a scenario into a new baseline job list."""
    snapshot = load_snapshot_or_fail(snapshot_path)
    scenario = _scenario_or_fail(snapshot, scenario_id)
    logger = _telemetry(telemetry_log, "scenario.commit", snapshot, snapshot_path, scenario_id)

    with (logger if logger else nullcontext()) as run_logger:
        try:
            result = commit(scenario, snapshot.jobs)
        except InvalidInputError as exc:
            raise typer.BadParameter(str(exc)) from exc
        write_jobs(out_json, result.jobs)
        console.print(
            f"[bold green]Committed {scenario.name}[/]: "
            f"{len(result.modified_job_ids)} modified, {len(result.added_job_ids)} added, "
            f"{len(result.deleted_job_ids)} deleted"
        )
        _print_skipped(result.skipped)
        console.print(f"Wrote new baseline ({len(result.jobs)} jobs) to {out_json}")
        if run_logger is not None:
            run_logger.finalize(
                metrics={
                    "modified": len(result.modified_job_ids),
                    "added": len(result.added_job_ids),
                    "deleted": len(result.deleted_job_ids),
                    "skipped": len(result.skipped),
                }
            )
