"""State machines shared by the step forms."""

from __future__ import annotations

import abc
import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from ..errors import (
    CatalogNotReadyError,
    InvalidStateError,
    RecordNotFoundError,
    TransportError,
)
from ..steps import BaseStep, StepKind

logger = logging.getLogger(__name__)

SubmitHandler = Callable[[BaseStep], None]


class FormState(str, Enum):
    """Every state a step form can be in."""

    LOADING = "loading"
    ERROR = "error"
    SEARCH = "search"
    EDIT = "edit"
    SELECT_STANDARD = "select-standard"
    SELECT_WALLET = "select-wallet"
    SELECT_VERSION = "select-version"
    SELECT_SUITE = "select-suite"
    SELECT_TEST = "select-test"
    SELECT_ACTION = "select-action"
    SELECT_ITEM = "select-item"
    READY = "ready"
    DISCARDED = "discarded"


def select_state(level: str) -> FormState:
    return FormState(f"select-{level}")


class BaseStepForm(metaclass=abc.ABCMeta):
    """A form that produces exactly one step.

    The completed step is handed to the submit handler once, after which the
    form is in :attr:`FormState.READY` and rejects every further action.
    """

    kind: StepKind

    def __init__(self, on_submit: Optional[SubmitHandler] = None) -> None:
        self._handler = on_submit
        self._state = FormState.EDIT
        self.last_error: Optional[Exception] = None
        self.error: Optional[Exception] = None
        self.step: Optional[BaseStep] = None

    @property
    def state(self) -> FormState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state not in (FormState.READY, FormState.DISCARDED)

    def on_submit(self, handler: SubmitHandler) -> None:
        self._handler = handler

    async def load(self) -> None:
        """Resolve whatever the form needs before the first selection."""

    def close(self) -> None:
        """Discard the form; it can never complete afterwards."""
        if self._state != FormState.READY:
            self._state = FormState.DISCARDED

    def _ensure_active(self) -> None:
        if not self.active:
            raise InvalidStateError(
                f"{type(self).__name__} is {self._state.value}; no further actions allowed"
            )

    def _complete(self, step: BaseStep) -> None:
        self._ensure_active()
        self._state = FormState.READY
        self.step = step
        logger.debug(f"{type(self).__name__} completed with {step.kind.value} step")
        if self._handler is not None:
            self._handler(step)


class LevelledStepForm(BaseStepForm):
    """Linear selection over ``levels`` with backtracking.

    The form is in ``select-<level>`` for the first unselected level and in
    ``ready`` once the last level is chosen. Selecting at a level clears every
    deeper level; when the options revealed at the next level hold exactly one
    member that member is selected automatically.
    """

    levels: Tuple[str, ...] = ()

    def __init__(self, on_submit: Optional[SubmitHandler] = None) -> None:
        super().__init__(on_submit)
        self.selection: Dict[str, Any] = {}
        self._state = select_state(self.levels[0])
        self._busy = False

    # ------------------------------------------------------------------
    @abc.abstractmethod
    def options(self, level: str) -> Sequence[Any]:
        """Return the options currently offered at ``level``."""
        raise NotImplementedError

    @abc.abstractmethod
    def _build_step(self) -> BaseStep:
        raise NotImplementedError

    async def _reveal(self, index: int) -> None:
        """Fetch the options of ``levels[index]`` if they come from I/O."""

    def _on_cleared(self, index: int) -> None:
        """Drop cached options belonging to ``levels[index:]``."""

    def _options_pending(self, level: str) -> bool:
        """Whether a search feeding ``level`` has not resolved yet."""
        return False

    # ------------------------------------------------------------------
    @property
    def state(self) -> FormState:
        self._check_invariant()
        return self._state

    @property
    def busy(self) -> bool:
        return self._busy

    def _check_invariant(self) -> None:
        state = self._state
        if state in (FormState.LOADING, FormState.ERROR, FormState.DISCARDED):
            return
        present = [level in self.selection for level in self.levels]
        if state == FormState.READY:
            expected = len(self.levels)
        else:
            names = [select_state(level) for level in self.levels]
            if state not in names:
                raise InvalidStateError(f"Unknown state {state.value}")
            expected = names.index(state)
        if present != [i < expected for i in range(len(self.levels))]:
            raise InvalidStateError(
                f"State {state.value} contradicts selection {sorted(self.selection)}"
            )

    def _index(self, level: str) -> int:
        try:
            return self.levels.index(level)
        except ValueError:
            raise InvalidStateError(f"Unknown level '{level}'") from None

    def _ensure_selectable(self, level: Optional[str] = None) -> None:
        self._ensure_active()
        if self._busy or self._state == FormState.LOADING:
            raise CatalogNotReadyError("Options are still loading")
        if self._state == FormState.ERROR:
            raise CatalogNotReadyError("Options failed to load; call load() again")
        if level is not None and self._options_pending(level):
            raise CatalogNotReadyError(f"Search for {level} options has not finished")

    def _lookup(self, level: str, value: Any) -> Optional[Any]:
        offered = self.options(level)
        if value in offered:
            return value
        if isinstance(value, str):
            for option in offered:
                if value in (getattr(option, "uid", None), getattr(option, "id", None)):
                    return option
        return None

    def _clear_from(self, index: int) -> None:
        for level in self.levels[index:]:
            self.selection.pop(level, None)
        self._on_cleared(index)

    # ------------------------------------------------------------------
    async def select(self, level: str, value: Any) -> None:
        """Select ``value`` at ``level``.

        A value that is not currently offered is recorded in ``last_error``
        and leaves the form unchanged.
        """
        self._ensure_selectable(level)
        index = self._index(level)
        option = self._lookup(level, value)
        if option is None:
            self.last_error = RecordNotFoundError(f"'{value}' is not an available {level}")
            logger.warning(f"{type(self).__name__}: {self.last_error}")
            return

        self._busy = True
        try:
            await self._apply(index, option)
        finally:
            self._busy = False

    async def _apply(self, index: int, option: Any) -> None:
        self._clear_from(index)
        self.selection[self.levels[index]] = option
        self.last_error = None

        if index + 1 == len(self.levels):
            self._complete(self._build_step())
            return

        self._state = select_state(self.levels[index + 1])
        try:
            await self._reveal(index + 1)
        except (RecordNotFoundError, TransportError) as exc:
            logger.warning(
                f"{type(self).__name__}: loading {self.levels[index + 1]} failed: {exc}"
            )
            self._clear_from(index)
            self._state = select_state(self.levels[index])
            self.last_error = exc
            return

        if not self.active:
            return
        candidates = self.options(self.levels[index + 1])
        if len(candidates) == 1:
            await self._apply(index + 1, candidates[0])

    def discard(self, level: str) -> None:
        """Clear ``level`` and every deeper level."""
        self._ensure_selectable()
        index = self._index(level)
        self._clear_from(index)
        depth = len([lvl for lvl in self.levels if lvl in self.selection])
        self._state = select_state(self.levels[depth])

