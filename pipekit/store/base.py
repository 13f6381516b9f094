"""Base interface for the external record store."""

from __future__ import annotations

import abc
from typing import Any, Dict, List, Optional

from ..errors import RecordNotFoundError

Record = Dict[str, Any]


class BaseRecordStore(metaclass=abc.ABCMeta):
    """Generic CRUD over named collections.

    Uniqueness is enforced by the store itself: writes violating a unique
    constraint raise :class:`~pipekit.errors.UniqueConstraintError`.
    """

    @abc.abstractmethod
    async def get(self, collection: str, record_id: str) -> Record:
        """Return one record.

        Raises:
            RecordNotFoundError: If no such record exists.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def list(
        self, collection: str, filters: Optional[Dict[str, Any]] = None
    ) -> List[Record]:
        """Return records whose fields equal every value in ``filters``."""
        raise NotImplementedError

    @abc.abstractmethod
    async def create(self, collection: str, data: Record) -> Record:
        """Insert a record and return it with its assigned ``id``."""
        raise NotImplementedError

    @abc.abstractmethod
    async def update(self, collection: str, record_id: str, data: Record) -> Record:
        """Merge ``data`` into an existing record and return the result."""
        raise NotImplementedError

    @abc.abstractmethod
    async def delete(self, collection: str, record_id: str) -> None:
        raise NotImplementedError

    async def first(self, collection: str, filters: Dict[str, Any]) -> Record:
        """Return the first record matching ``filters``.

        Raises:
            RecordNotFoundError: If nothing matches.
        """
        records = await self.list(collection, filters)
        if not records:
            raise RecordNotFoundError(f"No record in '{collection}' matches {filters}")
        return records[0]

    async def aclose(self) -> None:
        """Release held resources (no-op by default)."""
        pass
