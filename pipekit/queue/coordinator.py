"""Per-run state tracking in front of the job runner's queue."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..document import PipelineDocument, stringify_document
from ..errors import InvalidStateError, TransportError
from ..runner.base import BaseJobRunner
from ..runner.models import QueueStatus, QueueStatusName, QueueTicket
from .bus import CancelHandler, CancellationBus, Unsubscribe

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    SUBMITTED = "submitted"
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES: FrozenSet[RunState] = frozenset(
    {RunState.COMPLETED, RunState.FAILED, RunState.CANCELLED}
)

_TRANSITIONS: Dict[RunState, FrozenSet[RunState]] = {
    RunState.SUBMITTED: frozenset({RunState.QUEUED, RunState.RUNNING, RunState.FAILED}),
    RunState.QUEUED: frozenset({RunState.QUEUED, RunState.RUNNING}) | TERMINAL_STATES,
    RunState.RUNNING: frozenset({RunState.RUNNING}) | TERMINAL_STATES,
    RunState.COMPLETED: frozenset(),
    RunState.FAILED: frozenset(),
    RunState.CANCELLED: frozenset(),
}


class PipelineRun(BaseModel):
    """Client-side view of one submitted pipeline."""

    pipeline_identifier: str
    state: RunState = RunState.SUBMITTED
    ticket_id: Optional[str] = None
    ticket: Optional[QueueTicket] = None
    runner_ids: List[str] = Field(default_factory=list)
    workflow_id: Optional[str] = None
    run_id: Optional[str] = None
    workflow_namespace: Optional[str] = None
    enqueued_at: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, state: RunState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise InvalidStateError(
                f"Run of {self.pipeline_identifier} cannot go from {self.state.value} to {state.value}"
            )
        if state != self.state:
            logger.debug(f"Run {self.ticket_id}: {self.state.value} -> {state.value}")
        self.state = state


class CancelOutcome(BaseModel):
    """Result of a cancel request; the run stays queued unless ``cancelled``."""

    ticket_id: str
    cancelled: bool
    error: Optional[Exception] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)


def format_position(ticket: QueueTicket) -> str:
    """Return the 1-based position shown to users, e.g. ``"1 of 2"``."""
    return f"{ticket.position + 1} of {ticket.line_len}"


class ExecutionQueue:
    """Submits pipelines and owns cancellation of queued runs.

    Polling belongs to the observers: :meth:`refresh` asks the runner once.
    """

    def __init__(
        self, runner: BaseJobRunner, bus: Optional[CancellationBus] = None
    ) -> None:
        self.runner = runner
        self.bus = bus if bus is not None else CancellationBus()

    def emit_cancel_requested(self, ticket_id: str) -> None:
        self.bus.emit_cancel_requested(ticket_id)

    def on_cancel_requested(self, handler: CancelHandler) -> Unsubscribe:
        return self.bus.on_cancel_requested(handler)

    # ------------------------------------------------------------------
    def _apply_status(self, run: PipelineRun, status: QueueStatus) -> None:
        if status.ticket_id:
            run.ticket_id = status.ticket_id
        if status.runner_ids:
            run.runner_ids = list(status.runner_ids)
        run.enqueued_at = status.enqueued_at or run.enqueued_at

        if status.status == QueueStatusName.QUEUED:
            run.transition(RunState.QUEUED)
            run.ticket = status.ticket
        elif status.status in (QueueStatusName.STARTING, QueueStatusName.RUNNING):
            run.transition(RunState.RUNNING)
            run.ticket = None
            run.workflow_id = status.workflow_id or run.workflow_id
            run.run_id = status.run_id or run.run_id
            run.workflow_namespace = status.workflow_namespace or run.workflow_namespace
        elif status.status == QueueStatusName.FAILED:
            run.error = status.error_message or "Pipeline run failed"
            run.transition(RunState.FAILED)
        elif status.status == QueueStatusName.CANCELED:
            run.transition(RunState.CANCELLED)
        elif run.state == RunState.SUBMITTED:
            run.error = status.error_message or "Runner did not accept the pipeline"
            run.transition(RunState.FAILED)
        else:
            # the ticket left the queue
            run.transition(RunState.COMPLETED)
            run.ticket = None

    async def submit(
        self,
        pipeline_identifier: str,
        document: PipelineDocument,
        global_runner_id: Optional[str] = None,
    ) -> PipelineRun:
        """Send ``document`` to the runner.

        Transport failures give a ``failed`` run carrying the error message.
        """
        if global_runner_id:
            document = document.with_global_runner(global_runner_id)
        run = PipelineRun(pipeline_identifier=pipeline_identifier)
        try:
            status = await self.runner.submit(
                pipeline_identifier, stringify_document(document)
            )
        except TransportError as exc:
            logger.error(f"Submitting {pipeline_identifier} failed: {exc}")
            run.error = str(exc)
            run.transition(RunState.FAILED)
            return run

        self._apply_status(run, status)
        logger.info(f"Submitted {pipeline_identifier}: {run.state.value}")
        return run

    async def refresh(self, run: PipelineRun) -> PipelineRun:
        """Poll the runner once and update ``run``."""
        if run.is_terminal or run.ticket_id is None:
            return run
        try:
            status = await self.runner.get_status(run.ticket_id, run.runner_ids)
        except TransportError as exc:
            logger.warning(f"Refreshing ticket {run.ticket_id} failed: {exc}")
            run.error = str(exc)
            return run
        run.error = None
        self._apply_status(run, status)
        return run

    async def cancel(self, run: PipelineRun) -> CancelOutcome:
        """Announce the cancellation on the bus, then ask the runner.

        A failing bus observer is logged; the runner is still asked.

        Raises:
            InvalidStateError: If the run is not queued.
        """
        if run.state != RunState.QUEUED or run.ticket_id is None:
            raise InvalidStateError(f"Only queued runs can be cancelled, not {run.state.value}")
        ticket_id = run.ticket_id

        try:
            self.bus.emit_cancel_requested(ticket_id)
        except Exception as exc:
            logger.warning(f"Cancel observer failed for ticket {ticket_id}: {exc}")
        try:
            status = await self.runner.cancel(ticket_id, run.runner_ids)
        except TransportError as exc:
            logger.error(f"Cancelling ticket {ticket_id} failed: {exc}")
            return CancelOutcome(ticket_id=ticket_id, cancelled=False, error=exc)

        if status.status != QueueStatusName.CANCELED:
            error = TransportError(
                status.error_message or f"Runner answered {status.status.value} to cancel"
            )
            logger.error(f"Cancelling ticket {ticket_id} failed: {error}")
            return CancelOutcome(ticket_id=ticket_id, cancelled=False, error=error)

        run.transition(RunState.CANCELLED)
        run.ticket = None
        return CancelOutcome(ticket_id=ticket_id, cancelled=True)
