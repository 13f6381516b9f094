"""Tests for the command line interface."""

import pytest
from typer.testing import CliRunner

import pipekit.cli as cli
from pipekit.cli import app
from pipekit.compiler import compile_pipeline
from pipekit.document import ActivityOptions, PipelineMetadata, stringify_document
from pipekit.runner import InMemoryJobRunner
from pipekit.steps import DebugStep
from pipekit.store import InMemoryRecordStore

cli_runner = CliRunner()


@pytest.fixture
def pipeline_file(tmp_path):
    document = compile_pipeline(
        PipelineMetadata(name="demo"), ActivityOptions(), [DebugStep()]
    )
    path = tmp_path / "demo.yaml"
    path.write_text(stringify_document(document))
    return path


@pytest.fixture
def job_runner(monkeypatch):
    runner = InMemoryJobRunner(runner_ids=["runner-1"], capacity=1)
    monkeypatch.setattr(cli, "get_runner", lambda: runner)
    return runner


@pytest.fixture
def record_store(monkeypatch):
    store = InMemoryRecordStore()
    monkeypatch.setattr(cli, "get_store", lambda: store)
    return store


def test_validate_accepts_valid_file(pipeline_file):
    result = cli_runner.invoke(app, ["pipeline", "validate", str(pipeline_file)])
    assert result.exit_code == 0, result.stdout
    assert "valid" in result.stdout


def test_validate_reports_issues(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("name: demo\nsteps:\n  - use: teleport\n")
    result = cli_runner.invoke(app, ["pipeline", "validate", str(path)])
    assert result.exit_code == 1
    assert "runtime" in result.stdout
    assert "steps.0.use" in result.stdout


def test_validate_missing_file(tmp_path):
    result = cli_runner.invoke(app, ["pipeline", "validate", str(tmp_path / "nope.yaml")])
    assert result.exit_code == 1
    assert "File not found" in result.stdout


def test_format_prints_canonical_yaml(pipeline_file):
    result = cli_runner.invoke(app, ["pipeline", "format", str(pipeline_file)])
    assert result.exit_code == 0, result.stdout
    assert "\n\nsteps:\n" in result.stdout


def test_format_write_rewrites_file(pipeline_file):
    result = cli_runner.invoke(app, ["pipeline", "format", str(pipeline_file), "--write"])
    assert result.exit_code == 0, result.stdout
    assert "\n\nruntime:" in pipeline_file.read_text()


def test_queue_submit_status_cancel(pipeline_file, job_runner):
    first = cli_runner.invoke(
        app, ["queue", "submit", str(pipeline_file), "--pipeline", "acme/demo"]
    )
    assert first.exit_code == 0, first.stdout
    assert first.stdout.startswith("running")

    second = cli_runner.invoke(
        app, ["queue", "submit", str(pipeline_file), "--pipeline", "acme/demo"]
    )
    assert second.exit_code == 0, second.stdout
    assert "position 1 of 1" in second.stdout
    ticket_id = second.stdout.split()[1]

    status = cli_runner.invoke(app, ["queue", "status", ticket_id])
    assert status.stdout.strip() == "queued\t1 of 1"

    cancel = cli_runner.invoke(app, ["queue", "cancel", ticket_id, "--runner-id", "runner-1"])
    assert cancel.exit_code == 0, cancel.stdout
    assert f"Cancelled {ticket_id}" in cancel.stdout

    again = cli_runner.invoke(app, ["queue", "cancel", ticket_id])
    assert again.exit_code == 1


def test_queue_submit_pins_runner(pipeline_file, job_runner):
    result = cli_runner.invoke(
        app,
        ["queue", "submit", str(pipeline_file), "--pipeline", "acme/demo", "--runner", "r-2"],
    )
    assert result.exit_code == 0, result.stdout
    (entry,) = job_runner.entries.values()
    assert "global_runner_id: r-2" in entry.yaml


def test_schedule_set_and_list(record_store):
    result = cli_runner.invoke(
        app, ["schedule", "set", "pipe1", "--mode", "monthly", "--day", "31", "--owner", "acme"]
    )
    assert result.exit_code == 0, result.stdout
    assert "'day': 30" in result.stdout

    result = cli_runner.invoke(
        app, ["schedule", "set", "pipe1", "--mode", "weekly", "--day", "2", "--owner", "acme"]
    )
    assert result.exit_code == 0, result.stdout

    listing = cli_runner.invoke(app, ["schedule", "list", "--owner", "acme"])
    assert listing.exit_code == 0
    lines = listing.stdout.strip().splitlines()
    assert len(lines) == 1
    assert lines[0].endswith("pipe1\tweekly\tactive")


def test_schedule_rejects_bad_day(record_store):
    result = cli_runner.invoke(
        app, ["schedule", "set", "pipe1", "--mode", "weekly", "--day", "9", "--owner", "acme"]
    )
    assert result.exit_code == 1
    assert "Invalid schedule" in result.stdout


def test_schedule_needs_owner_or_runner(record_store):
    result = cli_runner.invoke(app, ["schedule", "list"])
    assert result.exit_code == 1
    assert "--owner or --runner" in result.stdout


def test_schedule_list_empty(record_store):
    result = cli_runner.invoke(app, ["schedule", "list", "--runner", "runner-1"])
    assert result.exit_code == 0
    assert "No schedules found" in result.stdout
