"""Record store speaking the PocketBase collections API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from .._http import HttpBackend
from ..catalog.http import quote_filter_value
from .base import BaseRecordStore, Record

logger = logging.getLogger(__name__)


def build_filter(filters: Dict[str, Any]) -> str:
    """Render equality filters as a PocketBase filter expression."""
    clauses = []
    for key, value in filters.items():
        if isinstance(value, bool):
            rendered = "true" if value else "false"
        elif isinstance(value, (int, float)):
            rendered = str(value)
        else:
            rendered = quote_filter_value(str(value))
        clauses.append(f"{key} = {rendered}")
    return " && ".join(clauses)


class HttpRecordStore(BaseRecordStore):
    """CRUD over ``/api/collections/{collection}/records``."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._http = HttpBackend(base_url, token, timeout, transport)

    @staticmethod
    def _url(collection: str, record_id: Optional[str] = None) -> str:
        url = f"/api/collections/{collection}/records"
        return f"{url}/{record_id}" if record_id else url

    async def get(self, collection: str, record_id: str) -> Record:
        return await self._http.request(
            "GET", self._url(collection, record_id), collection=collection
        )

    async def list(
        self, collection: str, filters: Optional[Dict[str, Any]] = None
    ) -> List[Record]:
        params = {"perPage": 500}
        if filters:
            params["filter"] = build_filter(filters)
        body = await self._http.request(
            "GET", self._url(collection), collection=collection, params=params
        )
        return list((body or {}).get("items") or [])

    async def create(self, collection: str, data: Record) -> Record:
        logger.debug(f"Creating record in {collection}")
        return await self._http.request(
            "POST", self._url(collection), collection=collection, json=data
        )

    async def update(self, collection: str, record_id: str, data: Record) -> Record:
        logger.debug(f"Updating record {record_id} in {collection}")
        return await self._http.request(
            "PATCH", self._url(collection, record_id), collection=collection, json=data
        )

    async def delete(self, collection: str, record_id: str) -> None:
        await self._http.request(
            "DELETE", self._url(collection, record_id), collection=collection
        )

    async def aclose(self) -> None:
        await self._http.aclose()
