"""Base interface for the external job runner."""

from __future__ import annotations

import abc
from typing import Any, AsyncIterator, List, Optional, Sequence

from .models import QueueStatus


class BaseJobRunner(metaclass=abc.ABCMeta):
    """Client of the job runner's queue, signal and realtime APIs."""

    @abc.abstractmethod
    async def submit(self, pipeline_identifier: str, yaml_text: str) -> QueueStatus:
        """Enqueue a pipeline.

        The response is ``running`` when a runner was free and ``queued``
        with a ticket otherwise.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def get_status(
        self, ticket_id: str, runner_ids: Sequence[str] = ()
    ) -> QueueStatus:
        raise NotImplementedError

    @abc.abstractmethod
    async def cancel(self, ticket_id: str, runner_ids: Sequence[str]) -> QueueStatus:
        """Remove a ticket from the queue."""
        raise NotImplementedError

    @abc.abstractmethod
    async def send_signal(
        self,
        workflow_id: str,
        namespace: str,
        signal: str,
        payload: Optional[Any] = None,
    ) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def subscribe(self, channel: str) -> AsyncIterator[List[Any]]:
        """Yield batches of messages published on ``channel``.

        Closing the iterator unsubscribes.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release held resources (no-op by default)."""
        pass
