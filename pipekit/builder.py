"""Ordered step list plus the one form currently adding a step."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from .catalog.base import BaseCatalog
from .config import SearchConfig
from .errors import InvalidStateError, StepNotFoundError
from .forms import (
    BaseStepForm,
    ConformanceCheckStepForm,
    DebugStepForm,
    EmailStepForm,
    HttpRequestStepForm,
    MarketplaceItemStepForm,
    WalletActionStepForm,
    WalletSelection,
)
from .steps import BaseStep, DebugStep, StepKind, WalletStep

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 100


class StepsBuilder:
    """Owns the immutable step tuple of one pipeline editing session.

    Every mutation replaces the tuple and bumps :attr:`revision`; mutations
    can be undone and redone. At most one form is active at a time.
    """

    def __init__(
        self,
        catalog: BaseCatalog,
        steps: Iterable[BaseStep] = (),
        search: Optional[SearchConfig] = None,
        preview: Optional[Callable[[], str]] = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        self.catalog = catalog
        self.search = search or SearchConfig()
        self._preview = preview
        self._steps: Tuple[BaseStep, ...] = tuple(steps)
        self._undo: List[Tuple[BaseStep, ...]] = []
        self._redo: List[Tuple[BaseStep, ...]] = []
        self._history_limit = history_limit
        self.revision = 0
        self.active_form: Optional[BaseStepForm] = None
        self.last_wallet: Optional[WalletSelection] = None

        self._form_factories: Dict[StepKind, Callable[[], BaseStepForm]] = {
            StepKind.WALLET: self._wallet_form,
            StepKind.CONFORMANCE_CHECK: lambda: ConformanceCheckStepForm(self.catalog),
            StepKind.CREDENTIAL: lambda: self._marketplace_form(StepKind.CREDENTIAL),
            StepKind.CUSTOM_CHECK: lambda: self._marketplace_form(StepKind.CUSTOM_CHECK),
            StepKind.USE_CASE_VERIFICATION: lambda: self._marketplace_form(
                StepKind.USE_CASE_VERIFICATION
            ),
            StepKind.EMAIL: EmailStepForm,
            StepKind.HTTP_REQUEST: HttpRequestStepForm,
            StepKind.DEBUG: DebugStepForm,
        }

    # ------------------------------------------------------------------
    @property
    def steps(self) -> Tuple[BaseStep, ...]:
        return self._steps

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def preview(self) -> str:
        """Return the live YAML preview, or an empty string without a hook."""
        return self._preview() if self._preview is not None else ""

    def set_preview(self, preview: Callable[[], str]) -> None:
        self._preview = preview

    def index_of(self, step_id: str) -> int:
        for index, step in enumerate(self._steps):
            if step.id == step_id:
                return index
        raise StepNotFoundError(step_id)

    def _commit(self, steps: Tuple[BaseStep, ...]) -> None:
        self._undo.append(self._steps)
        del self._undo[: -self._history_limit]
        self._redo.clear()
        self._steps = steps
        self.revision += 1

    # ------------------------------------------------------------------
    def _wallet_form(self) -> WalletActionStepForm:
        return WalletActionStepForm(
            self.catalog,
            last_selection=self.last_wallet,
            debounce=self.search.debounce_seconds,
            page_size=self.search.page_size,
        )

    def _marketplace_form(self, kind: StepKind) -> MarketplaceItemStepForm:
        return MarketplaceItemStepForm(
            kind,
            self.catalog,
            debounce=self.search.debounce_seconds,
            page_size=self.search.page_size,
        )

    def init_add_step(self, kind: Union[StepKind, str]) -> BaseStepForm:
        """Start a form for ``kind``; its completion appends the step.

        Any form still active is discarded first. Forms backed by a catalog
        must be loaded by the caller with ``await form.load()``.
        """
        kind = StepKind(kind)
        self.discard_add_step()
        form = self._form_factories[kind]()

        def append(step: BaseStep) -> None:
            if self.active_form is not form:
                raise InvalidStateError("A discarded form cannot add a step")
            self.active_form = None
            self._commit(self._steps + (step,))
            if isinstance(step, WalletStep):
                self.last_wallet = WalletSelection(step.wallet, step.version)
            logger.info(f"Appended {step.kind.value} step {step.id}")

        form.on_submit(append)
        self.active_form = form
        logger.debug(f"Started {kind.value} form")
        return form

    def discard_add_step(self) -> None:
        """Discard the active form, if any."""
        if self.active_form is None:
            return
        form, self.active_form = self.active_form, None
        form.close()
        logger.debug(f"Discarded {form.kind.value} form")

    def add_debug_step(self) -> DebugStep:
        step = DebugStep()
        self._commit(self._steps + (step,))
        return step

    def remove_step(self, step_id: str) -> None:
        index = self.index_of(step_id)
        self._commit(self._steps[:index] + self._steps[index + 1 :])
        logger.info(f"Removed step {step_id}")

    def reorder_step(self, step_id: str, new_index: int) -> None:
        """Move a step to ``new_index`` keeping every other step in order."""
        index = self.index_of(step_id)
        if not 0 <= new_index < len(self._steps):
            raise IndexError(f"Index {new_index} out of range for {len(self._steps)} steps")
        if new_index == index:
            return
        steps = list(self._steps)
        steps.insert(new_index, steps.pop(index))
        self._commit(tuple(steps))

    def can_shift_step(self, index: int, change: int) -> bool:
        new_index = index + change
        return (
            0 <= index < len(self._steps)
            and 0 <= new_index < len(self._steps)
            and new_index != index
        )

    def shift_step(self, index: int, change: int) -> None:
        """Move the step at ``index`` by ``change`` positions; no-op if out of range."""
        if not self.can_shift_step(index, change):
            return
        self.reorder_step(self._steps[index].id, index + change)

    def set_continue_on_error(self, step_id: str, value: bool) -> None:
        index = self.index_of(step_id)
        step = self._steps[index]
        if isinstance(step, DebugStep) or step.continue_on_error == value:
            return
        replaced = step.model_copy(update={"continue_on_error": value})
        self._commit(self._steps[:index] + (replaced,) + self._steps[index + 1 :])

    # ------------------------------------------------------------------
    def undo(self) -> bool:
        if not self._undo:
            return False
        self._redo.append(self._steps)
        self._steps = self._undo.pop()
        self.revision += 1
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append(self._steps)
        self._steps = self._redo.pop()
        self.revision += 1
        return True
