"""Single-level selection of a credential, use case or custom check."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Union

from ..catalog.base import BaseCatalog
from ..catalog.models import MarketplaceItem, MarketplaceItemType
from ..constants import DEFAULT_SEARCH_DEBOUNCE, DEFAULT_SEARCH_PAGE_SIZE
from ..errors import CatalogNotReadyError, InvalidStateError, RecordNotFoundError
from ..steps import CredentialStep, CustomCheckStep, StepKind, UseCaseVerificationStep
from .base import BaseStepForm, FormState, SubmitHandler
from .search import Search

logger = logging.getLogger(__name__)

ITEM_TYPES: Dict[StepKind, MarketplaceItemType] = {
    StepKind.CREDENTIAL: MarketplaceItemType.CREDENTIALS,
    StepKind.USE_CASE_VERIFICATION: MarketplaceItemType.USE_CASES_VERIFICATIONS,
    StepKind.CUSTOM_CHECK: MarketplaceItemType.CUSTOM_CHECKS,
}


class MarketplaceItemStepForm(BaseStepForm):
    """``search -> select-item -> ready``.

    The form moves to ``select-item`` as soon as a search returns results and
    back to ``search`` when one returns nothing.
    """

    def __init__(
        self,
        kind: StepKind,
        catalog: BaseCatalog,
        on_submit: Optional[SubmitHandler] = None,
        debounce: float = DEFAULT_SEARCH_DEBOUNCE,
        page_size: int = DEFAULT_SEARCH_PAGE_SIZE,
    ) -> None:
        if kind not in ITEM_TYPES:
            raise InvalidStateError(f"{kind.value} is not a marketplace step")
        super().__init__(on_submit)
        self.kind = kind
        self.item_type = ITEM_TYPES[kind]
        self.catalog = catalog
        self.page_size = page_size
        self.search: Search[MarketplaceItem] = Search(
            self._search_items, debounce=debounce, on_update=self._on_results
        )
        self._state = FormState.SEARCH

    async def _search_items(self, text: str) -> List[MarketplaceItem]:
        return await self.catalog.search_marketplace(
            text, self.item_type, limit=self.page_size
        )

    def _on_results(self, results: List[MarketplaceItem]) -> None:
        if self.active:
            self._state = FormState.SELECT_ITEM if results else FormState.SEARCH

    @property
    def found_items(self) -> List[MarketplaceItem]:
        return self.search.results

    def search_items(self, text: str) -> None:
        self._ensure_active()
        self.search.search(text)

    async def load(self) -> None:
        """Fetch the first page of items for an empty query."""
        self._ensure_active()
        await self.search.fetch("")

    def select_item(self, item: Union[MarketplaceItem, str]) -> None:
        """Complete the form with ``item`` from the current search results.

        Raises:
            CatalogNotReadyError: If a search is still debouncing or in flight.
        """
        self._ensure_active()
        if self.search.pending:
            raise CatalogNotReadyError("Item search has not finished")
        match = next(
            (
                found
                for found in self.search.results
                if found == item or found.id == item or found.path == item
            ),
            None,
        )
        if match is None:
            self.last_error = RecordNotFoundError(
                f"'{item}' is not among the found {self.item_type.value}"
            )
            logger.warning(f"{type(self).__name__}: {self.last_error}")
            return

        if self.kind == StepKind.CREDENTIAL:
            step = CredentialStep(credential=match)
        elif self.kind == StepKind.CUSTOM_CHECK:
            step = CustomCheckStep(check=match)
        else:
            step = UseCaseVerificationStep(use_case=match)
        self._complete(step)

    def close(self) -> None:
        super().close()
        self.search.close()
