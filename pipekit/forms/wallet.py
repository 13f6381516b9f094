"""Wallet action selection: wallet, version, action."""

from __future__ import annotations

import logging
from typing import Any, List, NamedTuple, Optional, Sequence

from ..catalog.base import BaseCatalog
from ..catalog.models import (
    MarketplaceItem,
    MarketplaceItemType,
    WalletAction,
    WalletVersion,
)
from ..constants import DEFAULT_SEARCH_DEBOUNCE, DEFAULT_SEARCH_PAGE_SIZE
from ..errors import CatalogNotReadyError, RecordNotFoundError, TransportError
from ..steps import StepKind, WalletStep
from .base import FormState, LevelledStepForm, SubmitHandler, select_state
from .search import Search

logger = logging.getLogger(__name__)


class WalletSelection(NamedTuple):
    """The wallet and version last used in a session."""

    wallet: MarketplaceItem
    version: WalletVersion


class WalletActionStepForm(LevelledStepForm):
    """Pick a wallet, one of its versions and an action to run on it.

    Wallets and actions come from debounced searches; versions are fetched
    once a wallet is chosen and the first page of actions once a version is
    chosen. When seeded with ``last_selection`` the form starts at
    ``select-action`` and :meth:`load` fetches the actions.
    """

    kind = StepKind.WALLET
    levels = ("wallet", "version", "action")

    def __init__(
        self,
        catalog: BaseCatalog,
        on_submit: Optional[SubmitHandler] = None,
        last_selection: Optional[WalletSelection] = None,
        debounce: float = DEFAULT_SEARCH_DEBOUNCE,
        page_size: int = DEFAULT_SEARCH_PAGE_SIZE,
    ) -> None:
        super().__init__(on_submit)
        self.catalog = catalog
        self.page_size = page_size
        self.found_versions: List[WalletVersion] = []
        self.wallet_search: Search[MarketplaceItem] = Search(
            self._search_wallets, debounce=debounce
        )
        self.action_search: Search[WalletAction] = Search(
            self._search_actions, debounce=debounce
        )
        if last_selection is not None:
            self.selection = {
                "wallet": last_selection.wallet,
                "version": last_selection.version,
            }
            self.found_versions = [last_selection.version]
            self._state = select_state("action")

    # ------------------------------------------------------------------
    async def _search_wallets(self, text: str) -> List[MarketplaceItem]:
        return await self.catalog.search_marketplace(
            text, MarketplaceItemType.WALLETS, limit=self.page_size
        )

    async def _search_actions(self, text: str) -> List[WalletAction]:
        wallet = self.selection.get("wallet")
        if wallet is None:
            return []
        return await self.catalog.search_wallet_actions(wallet.id, text)

    def search_wallets(self, text: str) -> None:
        self._ensure_active()
        self.wallet_search.search(text)

    def search_actions(self, text: str) -> None:
        self._ensure_active()
        if "wallet" not in self.selection:
            logger.debug("Ignoring action search without a wallet")
            return
        self.action_search.search(text)

    async def load(self) -> None:
        """Fetch the initial actions of a seeded wallet and version."""
        self._ensure_active()
        if self._state != FormState.SELECT_ACTION or self.action_search.results:
            return
        if self._busy:
            raise CatalogNotReadyError("Actions are already loading")
        self._busy = True
        try:
            await self._reveal(self._index("action"))
        except (RecordNotFoundError, TransportError) as exc:
            logger.warning(f"Seeded wallet is no longer usable: {exc}")
            self._clear_from(0)
            self._state = select_state("wallet")
            self.last_error = exc
        finally:
            self._busy = False

    # ------------------------------------------------------------------
    def options(self, level: str) -> Sequence[Any]:
        if level == "wallet":
            return self.wallet_search.results
        if level == "version":
            return self.found_versions
        return self.action_search.results

    def _options_pending(self, level: str) -> bool:
        if level == "wallet":
            return self.wallet_search.pending
        if level == "action":
            return self.action_search.pending
        return False

    async def _reveal(self, index: int) -> None:
        wallet = self.selection["wallet"]
        if self.levels[index] == "version":
            self.found_versions = list(
                await self.catalog.list_wallet_versions(wallet.id)
            )
        else:
            await self.action_search.fetch("")

    def _on_cleared(self, index: int) -> None:
        if index <= self._index("version"):
            self.action_search.reset()
        if index <= self._index("wallet"):
            self.found_versions = []

    def _build_step(self) -> WalletStep:
        return WalletStep(
            wallet=self.selection["wallet"],
            version=self.selection["version"],
            action=self.selection["action"],
        )

    # ------------------------------------------------------------------
    async def select_wallet(self, wallet: MarketplaceItem) -> None:
        await self.select("wallet", wallet)

    async def select_version(self, version: WalletVersion) -> None:
        await self.select("version", version)

    async def select_action(self, action: WalletAction) -> None:
        await self.select("action", action)

    def discard_wallet(self) -> None:
        self.discard("wallet")

    def discard_version(self) -> None:
        self.discard("version")

    def discard_action(self) -> None:
        self.discard("action")

    def close(self) -> None:
        super().close()
        self.wallet_search.close()
        self.action_search.close()
