"""Base interface for the read-only marketplace and standards catalog."""

from __future__ import annotations

import abc

from .models import (
    MarketplaceItem,
    MarketplaceItemType,
    Standard,
    WalletAction,
    WalletVersion,
)


class BaseCatalog(metaclass=abc.ABCMeta):
    """Abstract catalog used by the step forms."""

    @abc.abstractmethod
    async def list_standards(self) -> list[Standard]:
        """Return standards with their versions, suites and test paths."""
        raise NotImplementedError

    @abc.abstractmethod
    async def search_marketplace(
        self, text: str, item_type: MarketplaceItemType, limit: int = 10
    ) -> list[MarketplaceItem]:
        """Free-text search over marketplace items of ``item_type``."""
        raise NotImplementedError

    @abc.abstractmethod
    async def list_wallet_versions(self, wallet_id: str) -> list[WalletVersion]:
        """Return versions of a wallet.

        Raises:
            RecordNotFoundError: If the wallet no longer exists.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def search_wallet_actions(
        self, wallet_id: str, text: str = ""
    ) -> list[WalletAction]:
        """Search the actions defined for a wallet."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release held resources (no-op by default)."""
        pass
