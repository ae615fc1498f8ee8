"""Document store interface consumed by the search engine."""

from abc import ABC, abstractmethod
from typing import Any

from memsearch.storage.query import AggregateQuery, Query, StoreQuery

MEMORIALS = "memorials"
SEARCH_LOGS = "search_logs"


class DocumentStore(ABC):
    """Abstract base class for asynchronous document stores.

    Stores hold raw JSON-like records grouped in named collections and
    evaluate the typed predicate tree from ``memsearch.search.query``.
    Every method raises ``StoreError`` when the underlying store fails.
    """

    @abstractmethod
    async def fetch(
        self, query: StoreQuery, collection: str = MEMORIALS
    ) -> list[dict[str, Any]]:
        """Return matching records, sorted and paginated."""
        pass

    @abstractmethod
    async def count(self, where: Query, collection: str = MEMORIALS) -> int:
        """Count matching records, ignoring pagination."""
        pass

    @abstractmethod
    async def aggregate(
        self, query: AggregateQuery, collection: str = MEMORIALS
    ) -> list[tuple[Any, int]]:
        """Group matching records and count the members of each group.

        Groups with a null or empty key are left out. Order is unspecified.
        """
        pass

    @abstractmethod
    async def create(self, collection: str, record: dict[str, Any]) -> str:
        """Insert a record and return its id."""
        pass

    @abstractmethod
    async def patch(
        self, collection: str, record_id: str, changes: dict[str, Any]
    ) -> None:
        """Shallow-update top-level fields of an existing record."""
        pass

    @abstractmethod
    async def get(self, collection: str, record_id: str) -> dict[str, Any] | None:
        """Read a record by id."""
        pass

    @abstractmethod
    async def list_records(self, collection: str) -> list[dict[str, Any]]:
        """Return every record of a collection in insertion order."""
        pass

    async def close(self) -> None:
        """Release store resources."""
        pass
