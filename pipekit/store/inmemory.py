"""In-memory implementation of the record store."""

from __future__ import annotations

import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..constants import SCHEDULES_COLLECTION
from ..errors import RecordNotFoundError, UniqueConstraintError
from .base import BaseRecordStore, Record

DEFAULT_UNIQUE_CONSTRAINTS: Dict[str, List[Tuple[str, ...]]] = {
    SCHEDULES_COLLECTION: [("pipeline", "owner"), ("canonified_name",)],
}


class InMemoryRecordStore(BaseRecordStore):
    """Store records in local memory.

    Useful for tests or when no store is configured. Data is not persisted
    across process restarts.
    """

    def __init__(
        self,
        unique: Optional[Dict[str, Sequence[Tuple[str, ...]]]] = None,
    ) -> None:
        self._collections: Dict[str, Dict[str, Record]] = {}
        constraints = DEFAULT_UNIQUE_CONSTRAINTS if unique is None else unique
        self._unique = {name: list(fields) for name, fields in constraints.items()}

    # ------------------------------------------------------------------
    def _records(self, collection: str) -> Dict[str, Record]:
        return self._collections.setdefault(collection, {})

    def _check_unique(
        self, collection: str, candidate: Record, ignore_id: Optional[str] = None
    ) -> None:
        for fields in self._unique.get(collection, []):
            if any(candidate.get(field) is None for field in fields):
                continue
            for record_id, record in self._records(collection).items():
                if record_id == ignore_id:
                    continue
                if all(record.get(field) == candidate.get(field) for field in fields):
                    raise UniqueConstraintError(collection, tuple(fields))

    @staticmethod
    def _matches(record: Record, filters: Dict[str, Any]) -> bool:
        return all(record.get(key) == value for key, value in filters.items())

    # ------------------------------------------------------------------
    async def get(self, collection: str, record_id: str) -> Record:
        record = self._records(collection).get(record_id)
        if record is None:
            raise RecordNotFoundError(f"Record {record_id} not found in '{collection}'")
        return copy.deepcopy(record)

    async def list(
        self, collection: str, filters: Optional[Dict[str, Any]] = None
    ) -> List[Record]:
        return [
            copy.deepcopy(record)
            for record in self._records(collection).values()
            if self._matches(record, filters or {})
        ]

    async def create(self, collection: str, data: Record) -> Record:
        record = copy.deepcopy(data)
        record.setdefault("id", uuid.uuid4().hex[:15])
        self._check_unique(collection, record)
        now = datetime.now(timezone.utc).isoformat()
        record.setdefault("created", now)
        record["updated"] = now
        self._records(collection)[record["id"]] = record
        return copy.deepcopy(record)

    async def update(self, collection: str, record_id: str, data: Record) -> Record:
        records = self._records(collection)
        if record_id not in records:
            raise RecordNotFoundError(f"Record {record_id} not found in '{collection}'")
        merged = {**records[record_id], **copy.deepcopy(data), "id": record_id}
        self._check_unique(collection, merged, ignore_id=record_id)
        merged["updated"] = datetime.now(timezone.utc).isoformat()
        records[record_id] = merged
        return copy.deepcopy(merged)

    async def delete(self, collection: str, record_id: str) -> None:
        if self._records(collection).pop(record_id, None) is None:
            raise RecordNotFoundError(f"Record {record_id} not found in '{collection}'")

    def seed(self, collection: str, records: Iterable[Record]) -> None:
        """Insert records directly, bypassing constraints."""
        for record in records:
            self._records(collection)[record["id"]] = copy.deepcopy(record)
