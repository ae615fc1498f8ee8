"""In-memory document store for tests and small deployments."""

import logging
import uuid
from collections import Counter
from copy import deepcopy
from typing import Any

from memsearch.exceptions import RecordNotFoundError, StoreError
from memsearch.storage.query import (
    AggregateQuery,
    Query,
    Sort,
    StoreQuery,
    resolve_path,
)

from .base import MEMORIALS, DocumentStore

logger = logging.getLogger(__name__)


def _sort_records(records: list[dict[str, Any]], sort: Sort) -> list[dict[str, Any]]:
    """Order records by a field, records without the field last."""
    present = []
    missing = []
    for record in records:
        values = resolve_path(record, sort.field)
        if values:
            present.append((values[0], record))
        else:
            missing.append(record)

    present.sort(key=lambda pair: pair[0], reverse=sort.descending)
    return [record for _, record in present] + missing


class MemoryStore(DocumentStore):
    """Evaluates predicate trees directly against stored dictionaries."""

    def __init__(self, records: list[dict[str, Any]] | None = None):
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        for record in records or []:
            self._insert(MEMORIALS, record)

    def _records(self, collection: str) -> list[dict[str, Any]]:
        return list(self._collections.get(collection, {}).values())

    def _matching(self, where: Query, collection: str) -> list[dict[str, Any]]:
        return [r for r in self._records(collection) if where.matches(r)]

    def _insert(self, collection: str, record: dict[str, Any]) -> str:
        records = self._collections.setdefault(collection, {})
        record_id = str(record.get("id") or uuid.uuid4().hex)
        if record_id in records:
            raise StoreError(f"Duplicate id in {collection}: {record_id}")
        records[record_id] = {**deepcopy(record), "id": record_id}
        return record_id

    async def fetch(
        self, query: StoreQuery, collection: str = MEMORIALS
    ) -> list[dict[str, Any]]:
        records = self._matching(query.where, collection)
        if query.sort:
            records = _sort_records(records, query.sort)

        end = None if query.limit is None else query.offset + query.limit
        return deepcopy(records[query.offset : end])

    async def count(self, where: Query, collection: str = MEMORIALS) -> int:
        return len(self._matching(where, collection))

    async def aggregate(
        self, query: AggregateQuery, collection: str = MEMORIALS
    ) -> list[tuple[Any, int]]:
        counts: Counter = Counter()
        for record in self._matching(query.where, collection):
            counts.update(query.group_by.keys_for(record))
        return list(counts.items())

    async def create(self, collection: str, record: dict[str, Any]) -> str:
        record_id = self._insert(collection, record)
        logger.debug("Created %s/%s", collection, record_id)
        return record_id

    async def patch(
        self, collection: str, record_id: str, changes: dict[str, Any]
    ) -> None:
        records = self._collections.get(collection, {})
        if record_id not in records:
            raise RecordNotFoundError(collection, record_id)
        records[record_id].update(deepcopy(changes))

    async def get(self, collection: str, record_id: str) -> dict[str, Any] | None:
        record = self._collections.get(collection, {}).get(record_id)
        return deepcopy(record) if record is not None else None

    async def list_records(self, collection: str) -> list[dict[str, Any]]:
        return deepcopy(self._records(collection))

    def clear(self) -> None:
        """Drop every collection."""
        self._collections.clear()
