"""Shared helpers for the httpx-based backends."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from .errors import RecordNotFoundError, TransportError, UniqueConstraintError

logger = logging.getLogger(__name__)

NOT_UNIQUE_CODE = "validation_not_unique"


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error_message") or body)
    return str(body)


def _not_unique_fields(response: httpx.Response) -> tuple[str, ...]:
    try:
        body = response.json()
    except ValueError:
        return ()
    data = body.get("data") if isinstance(body, dict) else None
    if not isinstance(data, dict):
        return ()
    return tuple(
        field
        for field, detail in data.items()
        if isinstance(detail, dict) and detail.get("code") == NOT_UNIQUE_CODE
    )


def raise_for_response(response: httpx.Response, collection: str = "") -> None:
    """Translate an HTTP error response into a pipekit exception."""
    if response.is_success:
        return
    if response.status_code == 404:
        raise RecordNotFoundError(_error_message(response))
    if response.status_code == 400:
        fields = _not_unique_fields(response)
        if fields:
            raise UniqueConstraintError(collection, fields)
    raise TransportError(_error_message(response), status_code=response.status_code)


class HttpBackend:
    """Owns a lazily created ``httpx.AsyncClient`` bound to ``base_url``."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Authorization": self.token} if self.token else {}
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def request(
        self, method: str, url: str, collection: str = "", **kwargs: Any
    ) -> Any:
        """Send a request and return the decoded JSON body (``None`` if empty)."""
        try:
            response = await self._get_client().request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.error(f"{method} {url} failed: {exc}")
            raise TransportError(f"{method} {url} failed: {exc}") from exc

        raise_for_response(response, collection=collection)
        if not response.content:
            return None
        return response.json()

    def stream(self, method: str, url: str, **kwargs: Any):
        """Open a streaming request; use as an async context manager."""
        return self._get_client().stream(method, url, **kwargs)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
