"""In-memory job runner for testing."""

from __future__ import annotations

import asyncio
import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from .base import BaseJobRunner
from .models import QueueStatus, QueueStatusName, Signal


@dataclass
class _Entry:
    ticket_id: str
    pipeline_identifier: str
    yaml: str
    enqueued_at: str
    workflow_id: Optional[str] = None
    run_id: Optional[str] = None
    status: QueueStatusName = QueueStatusName.QUEUED
    error_message: Optional[str] = None


class InMemoryJobRunner(BaseJobRunner):
    """Runs at most ``capacity`` pipelines at once and queues the rest.

    Runs never finish on their own; call :meth:`complete` to free a slot.
    """

    def __init__(
        self,
        runner_ids: Sequence[str] = ("default-runner",),
        capacity: int = 1,
        namespace: str = "default",
    ) -> None:
        self.runner_ids = list(runner_ids)
        self.capacity = capacity
        self.namespace = namespace
        self.entries: Dict[str, _Entry] = {}
        self._line: List[str] = []
        self._running: List[str] = []
        self.signals: List[Signal] = []
        self._channels: Dict[str, List[asyncio.Queue]] = defaultdict(list)

    # ------------------------------------------------------------------
    def _start(self, entry: _Entry) -> None:
        entry.status = QueueStatusName.RUNNING
        entry.workflow_id = f"pipeline-{uuid.uuid4().hex[:12]}"
        entry.run_id = uuid.uuid4().hex
        self._running.append(entry.ticket_id)

    def _status(self, entry: _Entry) -> QueueStatus:
        status = QueueStatus(
            status=entry.status,
            ticket_id=entry.ticket_id,
            enqueued_at=entry.enqueued_at,
            runner_ids=list(self.runner_ids),
            workflow_id=entry.workflow_id,
            run_id=entry.run_id,
            workflow_namespace=self.namespace if entry.workflow_id else None,
            error_message=entry.error_message,
        )
        if entry.status == QueueStatusName.QUEUED:
            status.position = self._line.index(entry.ticket_id)
            status.line_len = len(self._line)
        return status

    # ------------------------------------------------------------------
    async def submit(self, pipeline_identifier: str, yaml_text: str) -> QueueStatus:
        entry = _Entry(
            ticket_id=uuid.uuid4().hex,
            pipeline_identifier=pipeline_identifier,
            yaml=yaml_text,
            enqueued_at=datetime.now(timezone.utc).isoformat(),
        )
        self.entries[entry.ticket_id] = entry
        if len(self._running) < self.capacity:
            self._start(entry)
        else:
            self._line.append(entry.ticket_id)
        return self._status(entry)

    async def get_status(
        self, ticket_id: str, runner_ids: Sequence[str] = ()
    ) -> QueueStatus:
        entry = self.entries.get(ticket_id)
        if entry is None:
            return QueueStatus(status=QueueStatusName.NOT_FOUND, ticket_id=ticket_id)
        return self._status(entry)

    async def cancel(self, ticket_id: str, runner_ids: Sequence[str]) -> QueueStatus:
        entry = self.entries.get(ticket_id)
        if entry is None or entry.status != QueueStatusName.QUEUED:
            return QueueStatus(
                status=QueueStatusName.NOT_FOUND,
                ticket_id=ticket_id,
                error_message="ticket is not queued",
            )
        self._line.remove(ticket_id)
        entry.status = QueueStatusName.CANCELED
        return self._status(entry)

    def complete(self, ticket_id: str, error: Optional[str] = None) -> None:
        """Finish a running pipeline and start the next queued one.

        A finished run leaves the queue and reports ``not_found``; a run
        finished with ``error`` reports ``failed``.
        """
        self._running.remove(ticket_id)
        if error is None:
            del self.entries[ticket_id]
        else:
            self.entries[ticket_id].status = QueueStatusName.FAILED
            self.entries[ticket_id].error_message = error
        if self._line:
            self._start(self.entries[self._line.pop(0)])

    async def send_signal(
        self,
        workflow_id: str,
        namespace: str,
        signal: str,
        payload: Optional[Any] = None,
    ) -> None:
        self.signals.append(
            Signal(workflow_id=workflow_id, namespace=namespace, signal=signal, payload=payload)
        )

    # ------------------------------------------------------------------
    async def publish(self, channel: str, batch: List[Any]) -> None:
        """Deliver ``batch`` to every current subscriber of ``channel``."""
        for queue in list(self._channels[channel]):
            await queue.put(list(batch))

    def subscriber_count(self, channel: str) -> int:
        return len(self._channels[channel])

    async def subscribe(self, channel: str) -> AsyncIterator[List[Any]]:
        queue: asyncio.Queue = asyncio.Queue()
        self._channels[channel].append(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._channels[channel].remove(queue)
