from __future__ import annotations

import json
import warnings
from contextlib import nullcontext
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from kitplan.cli._utils import load_snapshot_or_fail, parse_date_option
from kitplan.cli.scenario import scenario_app
from kitplan.planning import (
    apply_production_delays,
    is_late,
    schedules_dataframe,
    segments_dataframe,
)
from kitplan.planning.durations import format_duration
from kitplan.scheduling.calendar import productive_minutes
from kitplan.scheduling.forward import NoShiftsConfiguredWarning
from kitplan.scheduling.jobs import schedule_jobs
from kitplan.telemetry import RunTelemetryLogger

app = typer.Typer(add_completion=False, no_args_is_help=True)
app.add_typer(scenario_app, name="scenario")
console = Console()


@app.command()
def shifts(snapshot: Path):
    """List shift definitions with their productive hours."""
    sn = load_snapshot_or_fail(snapshot)
    t = Table(title=f"Shifts: {sn.name}")
    for column in ("ID", "Name", "Window", "Break", "Productive", "Active"):
        t.add_column(column)
    for shift in sorted(sn.shifts, key=lambda s: (s.order, s.id)):
        window = f"{shift.start_time}-{shift.end_time}"
        if shift.is_overnight:
            window += " (overnight)"
        brk = "-"
        if shift.break_start and shift.break_duration_minutes:
            brk = f"{shift.break_start} +{shift.break_duration_minutes}m"
        t.add_row(
            shift.id,
            shift.name,
            window,
            brk,
            f"{productive_minutes(shift) / 60:.2f}h",
            "yes" if shift.is_active else "no",
        )
    console.print(t)


@app.command()
def schedule(
    snapshot: Path,
    job: list[str] | None = typer.Option(
        None, "--job", "-j", help="Schedule only these job ids (repeatable)."
    ),
    default_date: str | None = typer.Option(
        None,
        "--date",
        help="Date (YYYY-MM-DD) used for jobs without scheduledDate; defaults to today.",
    ),
    include_inactive: bool = typer.Option(
        False,
        "--include-inactive",
        help="Treat inactive shifts as eligible (what-if shift configurations).",
    ),
    max_days: int | None = typer.Option(
        None, "--max-days", help="Override the scheduler horizon in days.", min=1
    ),
    out_json: Path | None = typer.Option(
        None, "--out-json", help="Optional path to write job schedules as JSON."
    ),
    out_csv: Path | None = typer.Option(
        None, "--out-csv", help="Optional path to write per-day calendar segments as CSV."
    ),
    telemetry_log: Path | None = typer.Option(
        None,
        "--telemetry-log",
        help="Append run telemetry to a JSONL file; per-job events land in events/.",
        writable=True,
        dir_okay=False,
    ),
):
    """Forward-schedule baseline jobs (production delays applied) on their shifts."""
    sn = load_snapshot_or_fail(snapshot, max_days)
    day = parse_date_option(default_date)
    jobs = apply_production_delays(sn.jobs, sn.delays)
    if job:
        known = {item.id for item in jobs}
        missing = [job_id for job_id in job if job_id not in known]
        if missing:
            raise typer.BadParameter(f"Unknown job id(s): {', '.join(missing)}")
        jobs = [item for item in jobs if item.id in set(job)]

    telemetry_logger = None
    if telemetry_log:
        telemetry_logger = RunTelemetryLogger(
            log_path=telemetry_log,
            command="schedule",
            snapshot=sn.name,
            snapshot_path=str(snapshot),
            config=sn.settings.model_dump(mode="json"),
            context={"include_inactive": include_inactive, "default_date": default_date},
            log_events=True,
        )

    with (telemetry_logger if telemetry_logger else nullcontext()) as run_logger:
        with warnings.catch_warnings():
            # surfaced through ScheduleResult.warnings below
            warnings.simplefilter("ignore", NoShiftsConfiguredWarning)
            schedules = schedule_jobs(
                jobs, sn.shifts, sn.settings, default_date=day, ignore_active_flag=include_inactive
            )

        table = Table(title=f"Schedule: {sn.name}")
        for column in ("Job", "Start", "End", "Duration", "Days", "Due", "Status"):
            table.add_column(column)
        unscheduled = 0
        late = 0
        notices: list[str] = []
        for item in schedules:
            result = item.result
            if not result.ok:
                unscheduled += 1
            notices.extend(result.warnings)
            missed = is_late(item.job, result.end)
            late += bool(missed)
            due = f"{item.job.due_date:%Y-%m-%d %H:%M}" if item.job.due_date else "-"
            table.add_row(
                item.job.job_number,
                f"{result.start:%Y-%m-%d %H:%M}",
                f"{result.end:%Y-%m-%d %H:%M:%S}" if result.end else "-",
                format_duration(result.duration_seconds),
                str(len(item.segments)),
                f"[red]{due} late[/]" if missed else due,
                result.issue.value if result.issue else ("fallback" if result.fallback else "ok"),
            )
            if run_logger is not None:
                run_logger.log_event(
                    "job_scheduled",
                    job_id=item.job_id,
                    start=result.start.isoformat(),
                    end=result.end.isoformat() if result.end else None,
                    issue=result.issue.value if result.issue else None,
                )
        console.print(table)
        for notice in dict.fromkeys(notices):
            console.print(f"[yellow]Warning:[/] {notice}")
        if unscheduled:
            console.print(f"[red]{unscheduled} job(s) could not be scheduled on eligible shifts.[/]")
        if late:
            console.print(f"[red]{late} job(s) finish after their due date.[/]")

        if out_json:
            out_json.parent.mkdir(parents=True, exist_ok=True)
            frame = schedules_dataframe(schedules)
            out_json.write_text(frame.to_json(orient="records", date_format="iso", indent=2))
            console.print(f"Wrote schedules to {out_json}")
        if out_csv:
            out_csv.parent.mkdir(parents=True, exist_ok=True)
            segments_dataframe(schedules).to_csv(out_csv, index=False)
            console.print(f"Wrote calendar segments to {out_csv}")

        if run_logger is not None:
            run_logger.finalize(
                metrics={"jobs": len(schedules), "unscheduled": unscheduled, "late": late},
                extra={"warnings": list(dict.fromkeys(notices))},
            )

    if telemetry_log:
        console.print(f"[dim]Telemetry appended to {telemetry_log}.[/]")


@app.command()
def summary(snapshot: Path):
    """Print snapshot entity counts as JSON."""
    sn = load_snapshot_or_fail(snapshot)
    counts = {
        "name": sn.name,
        "shifts": len(sn.shifts),
        "jobs": len(sn.jobs),
        "delays": len(sn.delays),
        "scenarios": len(sn.scenarios),
    }
    console.print_json(json.dumps(counts))


if __name__ == "__main__":
    app()
