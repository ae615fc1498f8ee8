"""Shared fixtures for search module tests."""

from datetime import date

import pytest

from memsearch.exceptions import StoreError
from memsearch.storage import MemoryStore


class FlakyStore(MemoryStore):
    """Memory store whose selected operations fail."""

    def __init__(self, records=None, fail=(), fail_group=None):
        super().__init__(records)
        self.fail = set(fail)
        self.fail_group = fail_group
        self.created = []

    async def fetch(self, query, collection="memorials"):
        if "fetch" in self.fail and collection == "memorials":
            raise StoreError("fetch unavailable")
        if "fetch_logs" in self.fail and collection != "memorials":
            raise StoreError("log fetch unavailable")
        return await super().fetch(query, collection)

    async def count(self, where, collection="memorials"):
        if "count" in self.fail:
            raise StoreError("count unavailable")
        return await super().count(where, collection)

    async def aggregate(self, query, collection="memorials"):
        if "aggregate" in self.fail or query.group_by.fields[0] == self.fail_group:
            raise StoreError("aggregate unavailable")
        return await super().aggregate(query, collection)

    async def create(self, collection, record):
        if "create" in self.fail:
            raise StoreError("create unavailable")
        return await super().create(collection, record)


@pytest.fixture
def flaky_store():
    """Factory for stores with injected failures."""

    def make(records, **kwargs):
        return FlakyStore(records, **kwargs)

    return make


@pytest.fixture
def fixed_today():
    """Clock pinned to a known date for relative year phrases."""
    return lambda: date(2025, 6, 1)
