"""Publish/subscribe channel for cancellation requests."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

CancelHandler = Callable[[str], None]
Unsubscribe = Callable[[], None]


class CancellationBus:
    """Tells independent observers that a ticket's cancellation was requested.

    One bus is created per editing session and injected where needed. An
    emission notifies, in subscription order, every handler subscribed when
    the emission started; handlers added or removed meanwhile take effect
    from the next emission.
    """

    def __init__(self) -> None:
        self._handlers: List[Tuple[object, CancelHandler]] = []

    def __len__(self) -> int:
        return len(self._handlers)

    def on_cancel_requested(self, handler: CancelHandler) -> Unsubscribe:
        """Subscribe ``handler`` and return a function that unsubscribes it."""
        entry = (object(), handler)
        self._handlers.append(entry)

        def unsubscribe() -> None:
            if entry in self._handlers:
                self._handlers.remove(entry)

        return unsubscribe

    def emit_cancel_requested(self, ticket_id: str) -> None:
        """Notify every current subscriber once.

        If handlers raise, the remaining ones still run and the first error
        is re-raised afterwards.
        """
        logger.info(f"Cancellation requested for ticket {ticket_id}")
        first_error: Optional[Exception] = None
        for _, handler in list(self._handlers):
            try:
                handler(ticket_id)
            except Exception as exc:
                logger.error(f"Cancellation handler failed for {ticket_id}: {exc}")
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error
