"""Debounced free-text search feeding a form's candidate list."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, Set, TypeVar

from ..constants import DEFAULT_SEARCH_DEBOUNCE
from ..errors import PipekitError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Fetcher = Callable[[str], Awaitable[Sequence[T]]]


class Search(Generic[T]):
    """Run ``fetch`` for the last text typed within the debounce window.

    Requests already in flight are never cancelled. Each request gets an
    increasing sequence number and its response is applied only if no
    response to a later request has been applied yet.
    """

    def __init__(
        self,
        fetch: Fetcher,
        debounce: float = DEFAULT_SEARCH_DEBOUNCE,
        on_update: Optional[Callable[[List[T]], None]] = None,
    ) -> None:
        self._fetch = fetch
        self.debounce = debounce
        self._on_update = on_update
        self.text = ""
        self.results: List[T] = []
        self.error: Optional[Exception] = None
        self._issued = 0
        self._applied = 0
        self._timer: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        timer_pending = self._timer is not None and not self._timer.done()
        return timer_pending or bool(self._inflight)

    def search(self, text: str) -> None:
        """Schedule a request for ``text``, replacing any pending one."""
        self.text = text
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._debounced(text))

    async def _debounced(self, text: str) -> None:
        await asyncio.sleep(self.debounce)
        task = asyncio.get_running_loop().create_task(self._run(text))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _run(self, text: str) -> None:
        try:
            await self.fetch(text)
        except PipekitError as exc:
            logger.warning(f"Search for '{text}' failed: {exc}")

    async def fetch(self, text: str = "") -> List[T]:
        """Issue a request for ``text`` immediately and return its results.

        Failures are recorded in :attr:`error` and re-raised.
        """
        self._issued += 1
        sequence = self._issued
        try:
            found = list(await self._fetch(text))
        except PipekitError as exc:
            if sequence > self._applied:
                self._applied = sequence
                self.error = exc
            raise

        if sequence > self._applied:
            self._applied = sequence
            self.results = found
            self.error = None
            if self._on_update is not None:
                self._on_update(found)
        else:
            logger.debug(f"Discarding stale results for '{text}'")
        return found

    def reset(self) -> None:
        """Clear results and ignore every response still in flight."""
        self._applied = self._issued
        self.results = []
        self.error = None

    async def wait(self) -> None:
        """Wait until no debounce timer or request is outstanding."""
        while self.pending:
            pending = [task for task in (self._timer, *self._inflight) if task is not None]
            await asyncio.gather(*pending, return_exceptions=True)

    def close(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
