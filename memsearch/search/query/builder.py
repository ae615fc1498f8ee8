"""Search query construction.

Translates a free-text query, structured filters and the requester into
the typed predicate tree understood by every document store.
"""

from __future__ import annotations

from memsearch.core.models import GalleryKind, PrivacyLevel
from memsearch.search.models import DEFAULT_LIMIT, MediaType, SearchFilters, SortBy
from memsearch.storage.query import (
    AggregateQuery,
    Condition,
    GroupBy,
    Grouping,
    Operator,
    Query,
    QueryBuilder,
    Sort,
    StoreQuery,
)

__all__ = [
    "AggregateQuery",
    "Condition",
    "GroupBy",
    "Grouping",
    "Operator",
    "Query",
    "QueryBuilder",
    "Sort",
    "StoreQuery",
    "SEARCHABLE_FIELDS",
    "MEDIA_KINDS",
    "split_terms",
    "privacy_gate",
    "text_predicate",
    "build_base_query",
    "filter_conditions",
    "sort_for",
    "build_search_query",
]

# Fields every free-text term is matched against
SEARCHABLE_FIELDS = (
    "full_name",
    "life_story",
    "biography",
    "timeline[].title",
    "timeline[].description",
    "guestbook[].message",
    "tags[]",
)

MEDIA_KINDS = {
    MediaType.PHOTOS: GalleryKind.IMAGE,
    MediaType.VIDEOS: GalleryKind.VIDEO,
    MediaType.AUDIO: GalleryKind.AUDIO,
    MediaType.DOCUMENTS: GalleryKind.FILE,
}


def split_terms(query: str) -> list[str]:
    """Split a free-text query into lowercase whitespace-separated terms."""
    return query.lower().split()


def privacy_gate(requester_id: str | None = None) -> Query:
    """Visibility predicate: public records, plus the requester's own."""
    public = Condition("privacy", Operator.EQ, PrivacyLevel.PUBLIC)
    if not requester_id:
        return Query(conditions=[public])

    return Query(
        conditions=[
            public,
            Condition("organization", Operator.EQ, requester_id),
            Condition("created_by", Operator.EQ, requester_id),
        ],
        operator=Operator.OR,
    )


def text_predicate(query: str) -> Query | None:
    """Every term must occur in at least one searchable field."""
    terms = split_terms(query)
    if not terms:
        return None

    per_term = [
        Query(
            conditions=[
                Condition(path, Operator.CONTAINS, term) for path in SEARCHABLE_FIELDS
            ],
            operator=Operator.OR,
        )
        for term in terms
    ]
    return Query(conditions=per_term, operator=Operator.AND)


def build_base_query(query: str, requester_id: str | None = None) -> Query:
    """Privacy gate plus text predicate, without structured filters."""
    builder = QueryBuilder().where_query(privacy_gate(requester_id))

    text = text_predicate(query)
    if text is not None:
        builder.where_query(text)

    return builder.build()


def filter_conditions(filters: SearchFilters) -> list[Condition | Query]:
    """Translate structured filters into conditions."""
    conditions: list[Condition | Query] = []

    if filters.date_range:
        if filters.date_range.start:
            conditions.append(
                Condition("date_of_death", Operator.GTE, filters.date_range.start)
            )
        if filters.date_range.end:
            conditions.append(
                Condition("date_of_death", Operator.LTE, filters.date_range.end)
            )

    if filters.organization:
        conditions.append(Condition("organization", Operator.EQ, filters.organization))

    if filters.location:
        for part in ("city", "state", "country"):
            value = getattr(filters.location, part)
            if value:
                conditions.append(
                    Condition(f"location.{part}", Operator.CONTAINS, value)
                )

    if filters.tags:
        conditions.append(Condition("tags[]", Operator.IN, tuple(filters.tags)))

    if filters.media_type:
        kind = MEDIA_KINDS[MediaType(filters.media_type)]
        conditions.append(Condition("gallery[].kind", Operator.EQ, kind))

    return conditions


def sort_for(sort_by: SortBy) -> Sort | None:
    """Store ordering for an explicit sort mode; relevance has none."""
    return {
        SortBy.DATE_DESC: Sort("date_of_death", descending=True),
        SortBy.DATE_ASC: Sort("date_of_death"),
        SortBy.NAME_ASC: Sort("full_name"),
        SortBy.NAME_DESC: Sort("full_name", descending=True),
    }.get(SortBy(sort_by))


def build_search_query(
    query: str, filters: SearchFilters, requester_id: str | None = None
) -> StoreQuery:
    """Build the main candidate query for a search request."""
    where = build_base_query(query, requester_id)
    for condition in filter_conditions(filters):
        where.add(condition)

    return StoreQuery(
        where=where,
        sort=sort_for(filters.sort_by),
        offset=filters.offset,
        limit=filters.limit or DEFAULT_LIMIT,
    )
