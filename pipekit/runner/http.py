"""Job runner client over the dashboard's HTTP API."""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, List, Optional, Sequence, Tuple

import httpx

from .._http import HttpBackend, raise_for_response
from ..errors import RecordNotFoundError, TransportError
from .base import BaseJobRunner
from .models import QueueStatus, QueueStatusName

logger = logging.getLogger(__name__)

QUEUE_URL = "/api/pipeline/queue"
SIGNAL_URL = "/api/compliance/send-temporal-signal"
REALTIME_URL = "/api/realtime"
CONNECT_EVENT = "PB_CONNECT"


async def iter_sse(lines: AsyncIterator[str]) -> AsyncIterator[Tuple[str, str]]:
    """Group server-sent event lines into ``(event, data)`` pairs."""
    event, data = "message", []
    async for line in lines:
        if not line:
            if data:
                yield event, "\n".join(data)
            event, data = "message", []
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "event":
            event = value
        elif name == "data":
            data.append(value)
    if data:
        yield event, "\n".join(data)


def _runner_params(runner_ids: Sequence[str]) -> Optional[dict]:
    return {"runner_ids": ",".join(runner_ids)} if runner_ids else None


class HttpJobRunner(BaseJobRunner):
    """Client of the queue, signal and realtime endpoints."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._http = HttpBackend(base_url, token, timeout, transport)

    async def submit(self, pipeline_identifier: str, yaml_text: str) -> QueueStatus:
        body = await self._http.request(
            "POST",
            QUEUE_URL,
            json={"pipeline_identifier": pipeline_identifier, "yaml": yaml_text},
        )
        return QueueStatus.model_validate(body)

    async def get_status(
        self, ticket_id: str, runner_ids: Sequence[str] = ()
    ) -> QueueStatus:
        try:
            body = await self._http.request(
                "GET", f"{QUEUE_URL}/{ticket_id}", params=_runner_params(runner_ids)
            )
        except RecordNotFoundError:
            return QueueStatus(status=QueueStatusName.NOT_FOUND, ticket_id=ticket_id)
        return QueueStatus.model_validate(body)

    async def cancel(self, ticket_id: str, runner_ids: Sequence[str]) -> QueueStatus:
        body = await self._http.request(
            "DELETE", f"{QUEUE_URL}/{ticket_id}", params=_runner_params(runner_ids)
        )
        return QueueStatus.model_validate(body)

    async def send_signal(
        self,
        workflow_id: str,
        namespace: str,
        signal: str,
        payload: Optional[Any] = None,
    ) -> None:
        body = {"workflow_id": workflow_id, "namespace": namespace, "signal": signal}
        if payload is not None:
            body["payload"] = payload
        await self._http.request("POST", SIGNAL_URL, json=body)
        logger.debug(f"Sent signal {signal} to {workflow_id}")

    async def subscribe(self, channel: str) -> AsyncIterator[List[Any]]:
        """Subscribe to ``channel`` through the realtime event stream.

        The first ``PB_CONNECT`` event carries the client id used to register
        the subscription.
        """
        try:
            async with self._http.stream("GET", REALTIME_URL, timeout=None) as response:
                if not response.is_success:
                    await response.aread()
                    raise_for_response(response)
                async for event, data in iter_sse(response.aiter_lines()):
                    if event == CONNECT_EVENT:
                        client_id = json.loads(data)["clientId"]
                        await self._http.request(
                            "POST",
                            REALTIME_URL,
                            json={"clientId": client_id, "subscriptions": [channel]},
                        )
                        logger.debug(f"Subscribed to {channel}")
                    elif event == channel:
                        message = json.loads(data)
                        yield message if isinstance(message, list) else [message]
        except httpx.HTTPError as exc:
            raise TransportError(f"Realtime stream for {channel} failed: {exc}") from exc

    async def aclose(self) -> None:
        await self._http.aclose()
