"""Search engine for memorial documents.

Coordinates query construction, the candidate fetch, relevance ranking,
highlighting, facets, suggestions and analytics logging.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import msgspec

from memsearch.config import Settings
from memsearch.core.models import MemorialDocument
from memsearch.search.analytics import SearchAnalytics
from memsearch.search.facets import FacetAggregator
from memsearch.search.highlighting import Highlighter
from memsearch.search.models import (
    DEFAULT_LIMIT,
    SearchFilters,
    SearchOptions,
    SearchResponse,
    SearchResult,
    SortBy,
    create_empty_response,
)
from memsearch.search.query.builder import StoreQuery, build_search_query, split_terms
from memsearch.search.query.nlp import NaturalLanguageProcessor
from memsearch.search.ranking import RelevanceScorer
from memsearch.search.suggestions import SuggestionGenerator
from memsearch.storage import MEMORIALS, DocumentStore, MemoryStore, SQLiteStore

logger = logging.getLogger(__name__)


class SearchEngine:
    """Search engine for memorial documents.

    Each search fans out the candidate fetch, the candidate count, the four
    facet aggregations and the suggestion lookup concurrently. Facet and
    suggestion failures degrade to empty lists; a failed candidate fetch
    yields an empty response.
    """

    def __init__(
        self,
        store: DocumentStore,
        scorer: RelevanceScorer | None = None,
        highlighter: Highlighter | None = None,
        facets: FacetAggregator | None = None,
        suggestions: SuggestionGenerator | None = None,
        nlp: NaturalLanguageProcessor | None = None,
        analytics: SearchAnalytics | None = None,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = 100,
        max_relevance_candidates: int = 1000,
    ):
        """Initialize search engine.

        Args:
            store: Document store holding memorials
            scorer: Relevance scorer (default: RelevanceScorer)
            highlighter: Snippet highlighter (default: Highlighter)
            facets: Facet aggregator over ``store``
            suggestions: Suggestion generator over ``store``
            nlp: Natural-language processor for advanced search
            analytics: Search log sink; None disables logging
            default_limit: Page size when the request does not set one
            max_limit: Upper bound for the page size
            max_relevance_candidates: Candidates ranked in-process per query
        """
        self.store = store
        self.scorer = scorer or RelevanceScorer()
        self.highlighter = highlighter or Highlighter()
        self.facets = facets or FacetAggregator(store)
        self.suggestions = suggestions or SuggestionGenerator(store)
        self.nlp = nlp or NaturalLanguageProcessor()
        self.analytics = analytics
        self.default_limit = default_limit
        self.max_limit = max_limit
        self.max_relevance_candidates = max_relevance_candidates
        self._pending: set[asyncio.Task] = set()

    def normalize_filters(
        self, filters: SearchFilters | dict[str, Any] | None
    ) -> SearchFilters:
        """Decode and clamp request filters.

        Raises:
            FilterError: If a filter dictionary cannot be decoded
        """
        if not isinstance(filters, SearchFilters):
            filters = SearchFilters.from_dict(filters)

        limit = self.default_limit if filters.limit is None else filters.limit
        limit = min(max(1, limit), self.max_limit)
        offset = max(0, filters.offset)
        if (limit, offset) != (filters.limit, filters.offset):
            filters = msgspec.structs.replace(filters, limit=limit, offset=offset)
        return filters

    async def search(
        self,
        query: str = "",
        filters: SearchFilters | dict[str, Any] | None = None,
        requester_id: str | None = None,
    ) -> SearchResponse:
        """Execute a search.

        Args:
            query: Free-text query, may be empty
            filters: Structured filters
            requester_id: Requesting user or organisation, widens visibility
                to their own non-public memorials

        Returns:
            Search response with results, total, facets and suggestions
        """
        filters = self.normalize_filters(filters)
        query = (query or "").strip()
        terms = split_terms(query)

        store_query = build_search_query(query, filters, requester_id)
        rank_all = bool(terms) and SortBy(filters.sort_by) == SortBy.RELEVANCE
        if rank_all:
            store_query.offset = 0
            store_query.limit = self.max_relevance_candidates

        candidates, facets, suggestions = await asyncio.gather(
            self._fetch_candidates(store_query),
            self.facets.compute(query, filters, requester_id),
            self.suggestions.suggest(query),
        )

        if candidates is None:
            response = create_empty_response(query, filters)
        else:
            records, total = candidates
            documents = self._decode(records)
            if rank_all:
                if total > self.max_relevance_candidates:
                    logger.info(
                        "Ranking first %d of %d candidates for %r",
                        self.max_relevance_candidates,
                        total,
                        query,
                    )
                page = self.scorer.rank(documents, terms)
                page = page[filters.offset : filters.offset + filters.limit]
            else:
                page = [(doc, self.scorer.score(doc, terms)) for doc in documents]

            response = SearchResponse(
                results=[
                    SearchResult(doc, score, self.highlighter.highlight(doc, terms))
                    for doc, score in page
                ],
                total=total,
                facets=facets,
                suggestions=suggestions,
                query=query,
                filters=filters,
            )

        self._log_search(query, filters, response.total, requester_id)
        return response

    async def advanced_search(
        self,
        query: str,
        options: SearchOptions | None = None,
        filters: SearchFilters | dict[str, Any] | None = None,
        requester_id: str | None = None,
    ) -> SearchResponse:
        """Apply natural-language processing, then search.

        Filters given by the caller take precedence over extracted ones.
        """
        options = options or SearchOptions()
        filters = self.normalize_filters(filters)

        vocabulary = await self.suggestions.vocabulary() if options.fuzzy_match else None
        processed = self.nlp.process(query or "", options, vocabulary)
        if processed.corrections:
            logger.debug("Corrected terms: %s", processed.corrections)

        return await self.search(
            processed.query, filters.merge(processed.filters), requester_id
        )

    async def suggest(self, partial: str) -> list[str]:
        """Autocomplete suggestions for a partial query."""
        return await self.suggestions.suggest(partial)

    async def drain(self) -> None:
        """Wait for outstanding analytics writes."""
        if self._pending:
            await asyncio.gather(*self._pending)

    async def close(self) -> None:
        """Flush analytics and close the store."""
        await self.drain()
        await self.store.close()

    async def _fetch_candidates(
        self, store_query: StoreQuery
    ) -> tuple[list[dict[str, Any]], int] | None:
        try:
            records, total = await asyncio.gather(
                self.store.fetch(store_query, MEMORIALS),
                self.store.count(store_query.where, MEMORIALS),
            )
        except Exception:
            logger.exception("Candidate fetch failed")
            return None
        return records, total

    @staticmethod
    def _decode(records: list[dict[str, Any]]) -> list[MemorialDocument]:
        documents = []
        for record in records:
            try:
                documents.append(MemorialDocument.from_record(record))
            except msgspec.ValidationError as e:
                logger.warning("Skipping malformed memorial %s: %s", record.get("id"), e)
        return documents

    def _log_search(
        self,
        query: str,
        filters: SearchFilters,
        results_count: int,
        user_id: str | None,
    ) -> None:
        if self.analytics is None:
            return
        task = asyncio.create_task(
            self.analytics.log_search(query, filters, results_count, user_id=user_id)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


class SearchEngineBuilder:
    """Builder for constructing SearchEngine instances."""

    def __init__(self):
        self.store: DocumentStore | None = None
        self.scorer: RelevanceScorer | None = None
        self.highlighter: Highlighter | None = None
        self.nlp: NaturalLanguageProcessor | None = None
        self.enable_analytics = True
        self.limits: dict[str, int] = {}

    def with_store(self, store: DocumentStore) -> "SearchEngineBuilder":
        """Set the document store."""
        self.store = store
        return self

    def with_scorer(self, scorer: RelevanceScorer) -> "SearchEngineBuilder":
        self.scorer = scorer
        return self

    def with_highlighter(self, highlighter: Highlighter) -> "SearchEngineBuilder":
        self.highlighter = highlighter
        return self

    def with_nlp(self, nlp: NaturalLanguageProcessor) -> "SearchEngineBuilder":
        self.nlp = nlp
        return self

    def with_analytics(self, enabled: bool) -> "SearchEngineBuilder":
        """Enable or disable search logging."""
        self.enable_analytics = enabled
        return self

    def with_limits(
        self,
        default_limit: int | None = None,
        max_limit: int | None = None,
        max_relevance_candidates: int | None = None,
    ) -> "SearchEngineBuilder":
        """Override paging and ranking bounds."""
        for name, value in (
            ("default_limit", default_limit),
            ("max_limit", max_limit),
            ("max_relevance_candidates", max_relevance_candidates),
        ):
            if value is not None:
                self.limits[name] = value
        return self

    def build(self) -> SearchEngine:
        """Build the SearchEngine instance."""
        store = self.store or MemoryStore()
        analytics = SearchAnalytics(store) if self.enable_analytics else None
        return SearchEngine(
            store=store,
            scorer=self.scorer,
            highlighter=self.highlighter,
            nlp=self.nlp,
            analytics=analytics,
            **self.limits,
        )


def create_memory_engine(
    records: list[dict[str, Any]] | None = None, enable_analytics: bool = True
) -> SearchEngine:
    """Create a SearchEngine over an in-memory store."""
    return (
        SearchEngineBuilder()
        .with_store(MemoryStore(records))
        .with_analytics(enable_analytics)
        .build()
    )


def create_store(settings: Settings) -> DocumentStore:
    """Create the document store selected by configuration."""
    if settings.store.backend == "memory":
        return MemoryStore()

    db_path = settings.db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return SQLiteStore(db_path)


def create_engine(settings: Settings, store: DocumentStore | None = None) -> SearchEngine:
    """Compose a SearchEngine from configuration."""
    search = settings.search
    return (
        SearchEngineBuilder()
        .with_store(store or create_store(settings))
        .with_highlighter(
            Highlighter(
                snippet_length=search.snippet_length,
                highlight_tag=search.highlight_tag,
            )
        )
        .with_nlp(NaturalLanguageProcessor(fuzzy_threshold=search.fuzzy_threshold))
        .with_analytics(settings.analytics.enabled)
        .with_limits(
            default_limit=search.default_limit,
            max_limit=search.max_limit,
            max_relevance_candidates=search.max_relevance_candidates,
        )
        .build()
    )
