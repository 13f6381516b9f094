"""End-to-end: compose a pipeline, validate, save, submit and follow it."""

import asyncio

import pytest

from pipekit import ExecutionQueue, PipelineEditor, PipelineMetadata, RunState
from pipekit.config import SearchConfig
from pipekit.forms import FormState
from pipekit.queue import CancellationBus, WorkflowLogStream, format_position
from pipekit.schedule import ScheduleManager, WeeklyMode
from pipekit.steps import StepKind

from conftest import ALPHA, ALPHA_V2, SCAN


async def _compose(catalog):
    editor = PipelineEditor(
        catalog,
        metadata=PipelineMetadata(name="Wallet login flow"),
        search=SearchConfig(debounce_seconds=0),
    )
    builder = editor.builder

    conformance = builder.init_add_step(StepKind.CONFORMANCE_CHECK)
    await conformance.load()
    await conformance.select_standard("openid4vp")
    await conformance.select_version("draft-24")
    await conformance.select_test("openid4vp/draft-24/wallet/happy-flow")
    assert conformance.state == FormState.READY

    wallet = builder.init_add_step(StepKind.WALLET)
    wallet.search_wallets("alpha")
    await wallet.wallet_search.wait()
    await wallet.select_wallet(ALPHA)
    await wallet.select_version(ALPHA_V2)
    await wallet.select_action(SCAN)
    assert wallet.state == FormState.READY
    return editor


@pytest.mark.asyncio
async def test_compose_validate_and_link(catalog):
    editor = await _compose(catalog)

    result = editor.validate()
    assert result.ok, [str(issue) for issue in result.issues]

    steps = editor.document.steps
    assert [step["id"] for step in steps] == ["happy-flow", "scan-qr"]
    assert steps[1]["with"]["parameters"]["deeplink"] == "${{happy-flow.outputs.deeplink}}"
    assert "happy-flow.outputs.deeplink" in editor.yaml


@pytest.mark.asyncio
async def test_submit_queue_and_logs(catalog, runner, store):
    editor = await _compose(catalog)
    await editor.save(store)
    assert not editor.has_changes

    bus = CancellationBus()
    queue = ExecutionQueue(runner, bus=bus)
    running = await editor.submit(queue, "acme/wallet-login-flow")
    waiting = await editor.submit(queue, "acme/wallet-login-flow")
    assert running.state == RunState.RUNNING
    assert format_position(waiting.ticket) == "1 of 1"

    stream = WorkflowLogStream(
        runner,
        workflow_id=running.workflow_id,
        namespace=running.workflow_namespace,
        subscription_suffix="-logs",
        start_signal="start",
        stop_signal="stop",
        bus=bus,
        ticket_id=waiting.ticket_id,
    )
    task = asyncio.ensure_future(stream.run())
    for _ in range(100):
        if runner.signals:
            break
        await asyncio.sleep(0)
    await runner.publish(f"{running.workflow_id}-logs", [{"message": "wallet opened", "time": 1}])
    for _ in range(100):
        if stream.logs:
            break
        await asyncio.sleep(0)

    outcome = await queue.cancel(waiting)
    await task

    assert outcome.cancelled
    assert [log.message for log in stream.logs] == ["wallet opened"]
    assert runner.signals[-1].signal == "stop"

    runner.complete(running.ticket_id)
    await queue.refresh(running)
    assert running.state == RunState.COMPLETED

    schedules = ScheduleManager(store, owner="acme")
    record = await schedules.upsert_schedule(editor.record_id, WeeklyMode(day=1))
    assert record.pipeline == editor.record_id
