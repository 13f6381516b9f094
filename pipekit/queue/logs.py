"""Streaming a workflow's logs over the runner's realtime channel."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, List, Optional

from pydantic import BaseModel

from ..errors import TransportError
from ..runner.base import BaseJobRunner
from .bus import CancellationBus

logger = logging.getLogger(__name__)


class LogStatus(str, Enum):
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    FAILED = "FAILED"
    FAILURE = "FAILURE"
    WARNING = "WARNING"
    INFO = "INFO"
    INTERRUPTED = "INTERRUPTED"


class WorkflowLog(BaseModel):
    message: Optional[str] = None
    time: Optional[float] = None
    status: LogStatus = LogStatus.INFO
    raw: Any = None


LogTransformer = Callable[[Any], WorkflowLog]


def default_log_transformer(datum: Any) -> WorkflowLog:
    """Read ``message``, ``time`` and ``status`` from a log mapping."""
    if not isinstance(datum, dict):
        return WorkflowLog(message=str(datum), raw=datum)
    status = str(datum.get("status") or datum.get("level") or "INFO").upper()
    time = datum.get("time", datum.get("timestamp"))
    return WorkflowLog(
        message=datum.get("message", datum.get("msg")),
        time=float(time) if time is not None else None,
        status=LogStatus(status) if status in LogStatus.__members__ else LogStatus.INFO,
        raw=datum,
    )


def _sort_key(log: WorkflowLog) -> float:
    return log.time if log.time is not None else 0.0


class WorkflowLogStream:
    """Follows ``<workflow_id><subscription_suffix>`` until stopped.

    The stream asks the workflow to start publishing with ``start_signal``
    and to stop with ``stop_signal``. Each batch is sorted by timestamp
    before it is handed to the consumer. When ``bus`` and ``ticket_id`` are
    given, a cancellation request for that ticket stops the stream.
    """

    def __init__(
        self,
        runner: BaseJobRunner,
        workflow_id: str,
        namespace: str,
        subscription_suffix: str,
        start_signal: str,
        stop_signal: str,
        workflow_signal_suffix: Optional[str] = None,
        transformer: LogTransformer = default_log_transformer,
        bus: Optional[CancellationBus] = None,
        ticket_id: Optional[str] = None,
    ) -> None:
        self.runner = runner
        self.workflow_id = workflow_id
        self.namespace = namespace
        self.subscription_suffix = subscription_suffix
        self.start_signal = start_signal
        self.stop_signal = stop_signal
        self.workflow_signal_suffix = workflow_signal_suffix
        self.transformer = transformer
        self.bus = bus
        self.ticket_id = ticket_id
        self.logs: List[WorkflowLog] = []
        self.error: Optional[Exception] = None
        self._stop = asyncio.Event()

    @property
    def channel(self) -> str:
        return f"{self.workflow_id}{self.subscription_suffix}"

    @property
    def signal_workflow_id(self) -> str:
        return f"{self.workflow_id}{self.workflow_signal_suffix or ''}"

    def stop(self) -> None:
        self._stop.set()

    def _on_cancel(self, ticket_id: str) -> None:
        if ticket_id == self.ticket_id:
            logger.info(f"Stopping logs of {self.workflow_id}: ticket {ticket_id} cancelled")
            self._stop.set()

    def _transform(self, datum: Any) -> WorkflowLog:
        try:
            return self.transformer(datum)
        except (ValueError, TypeError, KeyError) as exc:
            logger.error(f"Log transformer error: {exc}")
            return WorkflowLog(status=LogStatus.INFO, raw=datum)

    async def _signal(self, signal: str) -> None:
        await self.runner.send_signal(self.signal_workflow_id, self.namespace, signal)

    async def run(self, on_update: Optional[Callable[[List[WorkflowLog]], None]] = None) -> None:
        """Stream until :meth:`stop`, a matching cancellation or end of stream."""
        unsubscribe = None
        if self.bus is not None and self.ticket_id is not None:
            unsubscribe = self.bus.on_cancel_requested(self._on_cancel)

        subscription = self.runner.subscribe(self.channel)
        next_batch = asyncio.ensure_future(subscription.__anext__())
        stop_wait = asyncio.ensure_future(self._stop.wait())
        try:
            # let the subscription register before asking for logs
            await asyncio.sleep(0)
            try:
                await self._signal(self.start_signal)
            except TransportError as exc:
                logger.error(f"Start signal for {self.workflow_id} failed: {exc}")
                self.error = exc
                return

            while True:
                done, _ = await asyncio.wait(
                    {next_batch, stop_wait}, return_when=asyncio.FIRST_COMPLETED
                )
                if next_batch in done:
                    try:
                        batch = next_batch.result()
                    except StopAsyncIteration:
                        break
                    except TransportError as exc:
                        logger.error(f"Log stream of {self.workflow_id} failed: {exc}")
                        self.error = exc
                        break
                    logs = sorted((self._transform(datum) for datum in batch), key=_sort_key)
                    self.logs.extend(logs)
                    if on_update is not None:
                        on_update(logs)
                    next_batch = asyncio.ensure_future(subscription.__anext__())
                if stop_wait in done:
                    break
        finally:
            for task in (next_batch, stop_wait):
                task.cancel()
            await asyncio.gather(next_batch, stop_wait, return_exceptions=True)
            await subscription.aclose()
            if unsubscribe is not None:
                unsubscribe()
            try:
                await self._signal(self.stop_signal)
            except TransportError as exc:
                logger.warning(f"Stop signal for {self.workflow_id} failed: {exc}")
