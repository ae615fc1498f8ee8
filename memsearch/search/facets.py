"""Faceted navigation support for memorial search.

Facets are grouped counts by organization, location, year of death and
tag. They are computed over the privacy and text filtered candidate set
only, so a filter sidebar keeps showing every refinement available for
the current text query even after some filters are applied.
"""

import asyncio
import logging

from memsearch.search.models import Facets, FacetValue, SearchFilters
from memsearch.search.query.builder import (
    AggregateQuery,
    GroupBy,
    Grouping,
    Query,
    build_base_query,
)
from memsearch.storage import MEMORIALS, DocumentStore

logger = logging.getLogger(__name__)

FACET_GROUPS: dict[str, GroupBy] = {
    "organizations": GroupBy(("organization",)),
    "locations": GroupBy(("location.city", "location.state"), Grouping.COMPOSITE),
    "years": GroupBy(("date_of_death",), Grouping.YEAR),
    "tags": GroupBy(("tags[]",)),
}


def sort_facet_values(groups: list[tuple]) -> list[FacetValue]:
    """Drop empty keys and order by count descending, then key."""
    values = [FacetValue(key, count) for key, count in groups if key not in (None, "")]
    values.sort(key=lambda v: (-v.count, str(v.key)))
    return values


class FacetAggregator:
    """Runs one aggregation query per facet, concurrently."""

    def __init__(self, store: DocumentStore, size: int | None = None):
        """Initialize aggregator.

        Args:
            store: Document store to aggregate over
            size: Keep at most this many values per facet (default: all)
        """
        self.store = store
        self.size = size

    async def compute(
        self,
        query: str,
        filters: SearchFilters | None = None,
        requester_id: str | None = None,
    ) -> Facets:
        """Compute all facets for a text query.

        Structured ``filters`` are not applied to the facet counts.
        """
        where = build_base_query(query, requester_id)
        names = list(FACET_GROUPS)
        values = await asyncio.gather(*(self._facet(name, where) for name in names))
        return Facets(**dict(zip(names, values)))

    async def _facet(self, name: str, where: Query) -> list[FacetValue]:
        try:
            groups = await self.store.aggregate(
                AggregateQuery(where=where, group_by=FACET_GROUPS[name]), MEMORIALS
            )
        except Exception as e:
            logger.warning("Facet %s unavailable: %s", name, e)
            return []

        values = sort_facet_values(groups)
        return values[: self.size] if self.size else values
