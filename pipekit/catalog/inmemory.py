"""In-memory catalog for tests and offline use."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from ..errors import RecordNotFoundError
from .base import BaseCatalog
from .models import (
    MarketplaceItem,
    MarketplaceItemType,
    Standard,
    WalletAction,
    WalletVersion,
)


def _matches(text: str, *fields: str) -> bool:
    needle = text.strip().lower()
    return not needle or any(needle in field.lower() for field in fields)


class InMemoryCatalog(BaseCatalog):
    """Catalog backed by plain Python collections."""

    def __init__(
        self,
        standards: Optional[Iterable[Standard]] = None,
        items: Optional[Iterable[MarketplaceItem]] = None,
        wallet_versions: Optional[Dict[str, List[WalletVersion]]] = None,
        wallet_actions: Optional[Dict[str, List[WalletAction]]] = None,
    ) -> None:
        self.standards: List[Standard] = list(standards or [])
        self.items: List[MarketplaceItem] = list(items or [])
        self.wallet_versions: Dict[str, List[WalletVersion]] = dict(
            wallet_versions or {}
        )
        self.wallet_actions: Dict[str, List[WalletAction]] = dict(
            wallet_actions or {}
        )

    def _wallet_exists(self, wallet_id: str) -> bool:
        return any(
            item.id == wallet_id and item.type == MarketplaceItemType.WALLETS
            for item in self.items
        )

    async def list_standards(self) -> list[Standard]:
        return list(self.standards)

    async def search_marketplace(
        self, text: str, item_type: MarketplaceItemType, limit: int = 10
    ) -> list[MarketplaceItem]:
        found = [
            item
            for item in self.items
            if item.type == item_type and _matches(text, item.path, item.name)
        ]
        return found[:limit]

    async def list_wallet_versions(self, wallet_id: str) -> list[WalletVersion]:
        if not self._wallet_exists(wallet_id):
            raise RecordNotFoundError(f"Wallet {wallet_id} not found")
        return list(self.wallet_versions.get(wallet_id, []))

    async def search_wallet_actions(
        self, wallet_id: str, text: str = ""
    ) -> list[WalletAction]:
        if not self._wallet_exists(wallet_id):
            raise RecordNotFoundError(f"Wallet {wallet_id} not found")
        return [
            action
            for action in self.wallet_actions.get(wallet_id, [])
            if _matches(text, action.name, action.path)
        ]
