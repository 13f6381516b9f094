"""Example submitting a pipeline and following its logs."""

import asyncio
import sys

from pipekit import ExecutionQueue, get_runner
from pipekit.queue import WorkflowLogStream, format_position
from pipekit.schema import validate_yaml


async def main(path: str):
    result = validate_yaml(open(path).read())
    if not result.ok:
        for issue in result.issues:
            print(f"❌ {issue}")
        return

    runner = get_runner()
    queue = ExecutionQueue(runner)
    run = await queue.submit("examples/nightly", result.document)

    # Wait for a free runner
    while run.ticket is not None:
        print(f"⏳ Queued, position {format_position(run.ticket)}")
        await asyncio.sleep(5)
        await queue.refresh(run)

    print(f"🚀 {run.state.value}: {run.workflow_id}")
    if run.workflow_id is None:
        await runner.aclose()
        return

    stream = WorkflowLogStream(
        runner,
        workflow_id=run.workflow_id,
        namespace=run.workflow_namespace or "default",
        subscription_suffix="-logs",
        start_signal="start-logs",
        stop_signal="stop-logs",
        bus=queue.bus,
        ticket_id=run.ticket_id,
    )
    try:
        await asyncio.wait_for(
            stream.run(lambda logs: [print(f"[{log.status.value}] {log.message}") for log in logs]),
            timeout=60,
        )
    except asyncio.TimeoutError:
        stream.stop()
    await runner.aclose()


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1]))
