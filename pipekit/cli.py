"""Command line interface for pipeline documents, the run queue and schedules."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import typer

from .document import format_yaml, stringify_document
from .errors import InvalidStateError, PipekitError
from .queue import ExecutionQueue, PipelineRun, RunState, format_position
from .runner import get_runner
from .schedule import ScheduleForm, ScheduleManager, schedule_mode_to_wire
from .schema import ValidationResult, validate_yaml
from .store import get_store

app = typer.Typer(help="CLI for pipekit pipelines")

pipeline_app = typer.Typer(help="Commands for pipeline documents")
queue_app = typer.Typer(help="Commands for the run queue")
schedule_app = typer.Typer(help="Commands for recurring schedules")

app.add_typer(pipeline_app, name="pipeline")
app.add_typer(queue_app, name="queue")
app.add_typer(schedule_app, name="schedule")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """pipekit CLI entry point."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)


def _load(path: Path) -> ValidationResult:
    if not path.exists():
        typer.secho(f"File not found: {path}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    return validate_yaml(path.read_text())


def _print_issues(result: ValidationResult) -> None:
    for issue in result.issues:
        typer.secho(str(issue), fg=typer.colors.RED)


def _describe(run: PipelineRun) -> str:
    if run.state == RunState.QUEUED and run.ticket is not None:
        return f"queued {run.ticket_id} (position {format_position(run.ticket)})"
    if run.state == RunState.RUNNING:
        return f"running {run.workflow_id or ''}".rstrip()
    if run.error:
        return f"{run.state.value}: {run.error}"
    return run.state.value


# ----------------------------------------------------------------------
# pipeline


@pipeline_app.command("validate")
def pipeline_validate(path: Path) -> None:
    """
    Check a pipeline YAML file against the document schema.

    Example:
        pipekit pipeline validate my-pipeline.yaml
    """
    result = _load(path)
    if not result.ok:
        _print_issues(result)
        raise typer.Exit(code=1)
    typer.echo(f"{path}: valid")


@pipeline_app.command("format")
def pipeline_format(
    path: Path,
    write: bool = typer.Option(False, help="Rewrite the file in place"),
) -> None:
    """Print the canonical form of a pipeline YAML file."""
    result = _load(path)
    if not result.ok:
        _print_issues(result)
        raise typer.Exit(code=1)
    text = format_yaml(stringify_document(result.document))
    if write:
        path.write_text(text)
        typer.echo(f"Formatted {path}")
    else:
        typer.echo(text, nl=False)


# ----------------------------------------------------------------------
# queue


@queue_app.command("submit")
def queue_submit(
    path: Path,
    pipeline: str = typer.Option(..., help="Pipeline identifier, e.g. owner/name"),
    runner: Optional[str] = typer.Option(None, help="Run every step on this runner"),
) -> None:
    """
    Submit a pipeline document to the job runner.

    Prints the ticket and its position when the run has to wait for a
    free runner.

    Example:
        pipekit queue submit my-pipeline.yaml --pipeline acme/my-pipeline
    """
    result = _load(path)
    if not result.ok:
        _print_issues(result)
        raise typer.Exit(code=1)

    async def _submit() -> PipelineRun:
        job_runner = get_runner()
        try:
            return await ExecutionQueue(job_runner).submit(
                pipeline, result.document, global_runner_id=runner
            )
        finally:
            await job_runner.aclose()

    run = asyncio.run(_submit())
    if run.state == RunState.FAILED:
        typer.secho(_describe(run), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(_describe(run))


@queue_app.command("status")
def queue_status(
    ticket_id: str,
    runner_id: List[str] = typer.Option([], "--runner-id", help="Runner holding the ticket"),
) -> None:
    """Show the queue status of a ticket."""

    async def _status():
        job_runner = get_runner()
        try:
            return await job_runner.get_status(ticket_id, runner_id)
        finally:
            await job_runner.aclose()

    try:
        status = asyncio.run(_status())
    except PipekitError as exc:
        typer.secho(f"Status request failed: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    ticket = status.ticket
    if ticket is not None:
        typer.echo(f"{status.status.value}\t{format_position(ticket)}")
    else:
        typer.echo(status.status.value)


@queue_app.command("cancel")
def queue_cancel(
    ticket_id: str,
    runner_id: List[str] = typer.Option([], "--runner-id", help="Runner holding the ticket"),
) -> None:
    """Cancel a queued run."""

    async def _cancel():
        job_runner = get_runner()
        queue = ExecutionQueue(job_runner)
        run = PipelineRun(
            pipeline_identifier=ticket_id, ticket_id=ticket_id, runner_ids=runner_id
        )
        try:
            await queue.refresh(run)
            return await queue.cancel(run)
        finally:
            await job_runner.aclose()

    try:
        outcome = asyncio.run(_cancel())
    except InvalidStateError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    if not outcome.cancelled:
        typer.secho(f"Cancel failed: {outcome.error}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(f"Cancelled {ticket_id}")


# ----------------------------------------------------------------------
# schedule


def _manager(owner: Optional[str], runner: Optional[str]) -> ScheduleManager:
    if not owner and not runner:
        typer.secho("Pass --owner or --runner", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    return ScheduleManager(get_store(), owner=owner, runner=runner)


@schedule_app.command("set")
def schedule_set(
    pipeline_id: str,
    mode: str = typer.Option("daily", help="daily, weekly or monthly"),
    day: Optional[int] = typer.Option(
        None, help="Weekday (0 = Sunday) or day of month (1-31); defaults to today"
    ),
    owner: Optional[str] = typer.Option(None, help="Owning organization"),
    runner: Optional[str] = typer.Option(None, help="Runner executing the schedule"),
) -> None:
    """
    Create or update the schedule of a pipeline.

    Example:
        pipekit schedule set pipeline123 --mode weekly --day 1 --owner acme
    """
    manager = _manager(owner, runner)
    try:
        schedule_mode = manager.compute_schedule_mode(ScheduleForm(mode=mode, day=day))
    except ValueError as exc:
        typer.secho(f"Invalid schedule: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    async def _set():
        try:
            return await manager.upsert_schedule(pipeline_id, schedule_mode)
        finally:
            await manager.store.aclose()

    try:
        record = asyncio.run(_set())
    except PipekitError as exc:
        typer.secho(f"Saving schedule failed: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(f"{record.id}\t{record.canonified_name}\t{schedule_mode_to_wire(record.mode)}")


@schedule_app.command("list")
def schedule_list(
    owner: Optional[str] = typer.Option(None, help="Owning organization"),
    runner: Optional[str] = typer.Option(None, help="Runner executing the schedules"),
) -> None:
    """List schedules of an owner or a runner."""
    manager = _manager(owner, runner)

    async def _list():
        try:
            return await manager.list_schedules()
        finally:
            await manager.store.aclose()

    records = asyncio.run(_list())
    if not records:
        typer.echo("No schedules found")
        return
    for record in records:
        paused = "paused" if record.paused else "active"
        typer.echo(f"{record.id}\t{record.pipeline}\t{record.mode.mode}\t{paused}")
