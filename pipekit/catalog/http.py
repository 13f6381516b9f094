"""HTTP catalog speaking the dashboard's PocketBase-style API."""

from __future__ import annotations

from typing import Any, Optional

import httpx
from pydantic import TypeAdapter

from .._http import HttpBackend
from .base import BaseCatalog
from .models import (
    MarketplaceItem,
    MarketplaceItemType,
    Standard,
    WalletAction,
    WalletVersion,
)

_standards_adapter = TypeAdapter(list[Standard])


def quote_filter_value(value: str) -> str:
    """Quote ``value`` for use inside a PocketBase filter expression."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _items(body: Any) -> list[dict]:
    if isinstance(body, dict):
        return list(body.get("items") or [])
    return list(body or [])


class HttpCatalog(BaseCatalog):
    """Catalog client.

    Records are expected to carry the server-computed ``path`` field.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._http = HttpBackend(base_url, token, timeout, transport)

    async def list_standards(self) -> list[Standard]:
        body = await self._http.request(
            "GET",
            "/api/template/blueprints",
            params={"only_show_in_pipeline_gui": "true"},
        )
        return _standards_adapter.validate_python(body or [])

    async def search_marketplace(
        self, text: str, item_type: MarketplaceItemType, limit: int = 10
    ) -> list[MarketplaceItem]:
        filter_ = f"path ~ {quote_filter_value(text)} && type = {quote_filter_value(item_type.value)}"
        body = await self._http.request(
            "GET",
            "/api/collections/marketplace_items/records",
            collection="marketplace_items",
            params={"filter": filter_, "page": 1, "perPage": limit},
        )
        return [MarketplaceItem.model_validate(item) for item in _items(body)]

    async def list_wallet_versions(self, wallet_id: str) -> list[WalletVersion]:
        # 404 on the wallet itself surfaces as RecordNotFoundError
        await self._http.request(
            "GET", f"/api/collections/wallets/records/{wallet_id}", collection="wallets"
        )
        body = await self._http.request(
            "GET",
            "/api/collections/wallet_versions/records",
            collection="wallet_versions",
            params={"filter": f"wallet = {quote_filter_value(wallet_id)}"},
        )
        return [WalletVersion.model_validate(item) for item in _items(body)]

    async def search_wallet_actions(
        self, wallet_id: str, text: str = ""
    ) -> list[WalletAction]:
        needle = quote_filter_value(text)
        filter_ = (
            f"wallet = {quote_filter_value(wallet_id)} && "
            f"(name ~ {needle} || canonified_name ~ {needle})"
        )
        body = await self._http.request(
            "GET",
            "/api/collections/wallet_actions/records",
            collection="wallet_actions",
            params={"filter": filter_},
        )
        return [WalletAction.model_validate(item) for item in _items(body)]

    async def aclose(self) -> None:
        await self._http.aclose()
