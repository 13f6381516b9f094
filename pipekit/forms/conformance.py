"""Conformance check selection: standard, version, suite, test."""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence, Union

from ..catalog.base import BaseCatalog
from ..catalog.models import Standard, StandardVersion, Suite
from ..errors import CatalogNotReadyError, PipekitError
from ..steps import ConformanceCheckStep, StepKind
from .base import FormState, LevelledStepForm, SubmitHandler, select_state

logger = logging.getLogger(__name__)


class ConformanceCheckStepForm(LevelledStepForm):
    """Walks the standards catalog down to a single test path.

    The form starts in ``loading``; call :meth:`load` to fetch the catalog.
    """

    kind = StepKind.CONFORMANCE_CHECK
    levels = ("standard", "version", "suite", "test")

    def __init__(
        self, catalog: BaseCatalog, on_submit: Optional[SubmitHandler] = None
    ) -> None:
        super().__init__(on_submit)
        self.catalog = catalog
        self.standards: List[Standard] = []
        self._state = FormState.LOADING

    async def load(self) -> None:
        self._ensure_active()
        if self._busy:
            raise CatalogNotReadyError("Standards are already loading")
        self._busy = True
        self._state = FormState.LOADING
        self.error = None
        try:
            self.standards = list(await self.catalog.list_standards())
        except PipekitError as exc:
            logger.error(f"Loading standards failed: {exc}")
            self.error = exc
            self._state = FormState.ERROR
            return
        finally:
            self._busy = False

        self.selection.clear()
        self._state = select_state("standard")
        logger.debug(f"Loaded {len(self.standards)} standards")

    # ------------------------------------------------------------------
    @property
    def available_versions(self) -> Sequence[StandardVersion]:
        standard = self.selection.get("standard")
        return standard.versions if standard else ()

    @property
    def available_suites(self) -> Sequence[Suite]:
        version = self.selection.get("version")
        return version.suites if version else ()

    @property
    def available_tests(self) -> Sequence[str]:
        suite = self.selection.get("suite")
        return suite.paths if suite else ()

    def options(self, level: str) -> Sequence[Any]:
        if level == "standard":
            return self.standards
        if level == "version":
            return self.available_versions
        if level == "suite":
            return self.available_suites
        return self.available_tests

    def _build_step(self) -> ConformanceCheckStep:
        return ConformanceCheckStep(
            standard=self.selection["standard"].uid,
            version=self.selection["version"].uid,
            suite=self.selection["suite"].uid,
            test=self.selection["test"],
        )

    # ------------------------------------------------------------------
    async def select_standard(self, standard: Union[Standard, str]) -> None:
        await self.select("standard", standard)

    async def select_version(self, version: Union[StandardVersion, str]) -> None:
        await self.select("version", version)

    async def select_suite(self, suite: Union[Suite, str]) -> None:
        await self.select("suite", suite)

    async def select_test(self, test: str) -> None:
        await self.select("test", test)

    def discard_standard(self) -> None:
        self.discard("standard")

    def discard_version(self) -> None:
        self.discard("version")

    def discard_suite(self) -> None:
        self.discard("suite")

    def discard_test(self) -> None:
        self.discard("test")
