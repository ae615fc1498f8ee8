"""Autocomplete suggestions from indexed names, places and tags."""

import logging
import re
from collections.abc import Iterator
from typing import Any

from memsearch.search.query.builder import (
    Condition,
    Operator,
    QueryBuilder,
    StoreQuery,
    privacy_gate,
)
from memsearch.storage import MEMORIALS, DocumentStore
from memsearch.storage.query import resolve_path

logger = logging.getLogger(__name__)

# Candidate fields, in the order candidates are discovered within a record
SUGGESTION_FIELDS = (
    "full_name",
    "preferred_name",
    "location.city",
    "location.state",
    "tags[]",
)

_WORD = re.compile(r"[^\W\d_]{3,}")


def iter_candidates(record: dict[str, Any]) -> Iterator[str]:
    """Yield suggestion candidates of a raw record in field order."""
    for path in SUGGESTION_FIELDS:
        for value in resolve_path(record, path):
            if isinstance(value, str) and value:
                yield value


class SuggestionGenerator:
    """Substring autocomplete over public documents."""

    def __init__(
        self,
        store: DocumentStore,
        max_suggestions: int = 5,
        min_length: int = 2,
        batch_size: int = 50,
    ):
        self.store = store
        self.max_suggestions = max_suggestions
        self.min_length = min_length
        self.batch_size = batch_size

    async def suggest(self, partial: str) -> list[str]:
        """Suggest up to ``max_suggestions`` terms containing ``partial``.

        Results keep discovery order. Store failures yield no suggestions.
        """
        needle = (partial or "").strip()
        if len(needle) < self.min_length:
            return []

        try:
            return await self._collect(needle)
        except Exception as e:
            logger.warning("Suggestions unavailable for %r: %s", needle, e)
            return []

    async def _collect(self, needle: str) -> list[str]:
        lowered = needle.lower()
        where = (
            QueryBuilder()
            .where_query(privacy_gate())
            .where_any(
                *(Condition(path, Operator.CONTAINS, needle) for path in SUGGESTION_FIELDS)
            )
            .build()
        )

        suggestions: list[str] = []
        offset = 0
        while True:
            batch = await self.store.fetch(
                StoreQuery(where=where, offset=offset, limit=self.batch_size), MEMORIALS
            )
            for record in batch:
                for candidate in iter_candidates(record):
                    if lowered in candidate.lower() and candidate not in suggestions:
                        suggestions.append(candidate)
                        if len(suggestions) >= self.max_suggestions:
                            return suggestions

            if len(batch) < self.batch_size:
                return suggestions
            offset += self.batch_size

    async def vocabulary(self) -> set[str]:
        """Lowercase words of public names, places and tags.

        Used for fuzzy term correction. Returns an empty set when the store
        cannot be read.
        """
        try:
            records = await self.store.fetch(
                StoreQuery(where=privacy_gate()), MEMORIALS
            )
        except Exception as e:
            logger.warning("Vocabulary unavailable: %s", e)
            return set()

        words = set()
        for record in records:
            for candidate in iter_candidates(record):
                words.update(_WORD.findall(candidate.lower()))
        return words
