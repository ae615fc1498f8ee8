"""Search analytics logging and reporting.

Every search writes one ``SearchLog`` record to the ``search_logs``
collection. Writing is fire-and-forget: a failing analytics store never
affects a search. The reporting helpers read the same collection back for
dashboards and the ``memsearch popular`` / ``memsearch stats`` commands.
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import msgspec

from memsearch.search.models import SearchFilters
from memsearch.storage import SEARCH_LOGS, DocumentStore
from memsearch.storage.query import Condition, Operator, Query, StoreQuery

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ClickedResult(msgspec.Struct, frozen=True, kw_only=True):
    """A result the user opened from a search results page."""

    document_id: str
    position: int
    clicked_at: str


class SearchLog(msgspec.Struct, kw_only=True):
    """Analytics record written once per search."""

    query: str
    results_count: int
    timestamp: str
    session_id: str
    filters: dict[str, Any] = msgspec.field(default_factory=dict)
    user_id: str | None = None
    clicked_results: list[ClickedResult] = msgspec.field(default_factory=list)
    id: str | None = None


@dataclass
class PopularSearch:
    """Aggregated statistics for one normalised query."""

    query: str
    count: int
    avg_results: float


@dataclass
class SearchOverview:
    """Summary of search activity over a period."""

    total_searches: int = 0
    unique_users: int = 0
    avg_results: float = 0.0
    zero_result_rate: float = 0.0  # percent
    daily_trend: list[tuple[str, int]] = field(default_factory=list)


class SearchAnalytics:
    """Writes and summarises search logs."""

    def __init__(
        self,
        store: DocumentStore,
        enabled: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.enabled = enabled
        self.clock = clock

    def _timestamp(self, moment: datetime | None = None) -> str:
        return (moment or self.clock()).isoformat(timespec="seconds")

    async def log_search(
        self,
        query: str,
        filters: SearchFilters | dict[str, Any] | None,
        results_count: int,
        user_id: str | None = None,
        session_id: str | None = None,
    ) -> str | None:
        """Record a search. Never raises.

        Returns:
            The id of the written log, or None when disabled or failed
        """
        if not self.enabled:
            return None

        try:
            if isinstance(filters, SearchFilters):
                filters = filters.to_dict()
            entry = SearchLog(
                query=query,
                filters=dict(filters or {}),
                results_count=results_count,
                timestamp=self._timestamp(),
                user_id=user_id,
                session_id=session_id or uuid.uuid4().hex,
            )
            record = msgspec.to_builtins(entry)
            record.pop("id", None)
            return await self.store.create(SEARCH_LOGS, record)
        except Exception:
            logger.exception("Failed to write search log for %r", query)
            return None

    async def record_click(self, log_id: str, document_id: str, position: int) -> bool:
        """Append a clicked result to an existing search log. Never raises."""
        try:
            record = await self.store.get(SEARCH_LOGS, log_id)
            if record is None:
                logger.warning("Search log not found: %s", log_id)
                return False

            clicks = list(record.get("clicked_results") or [])
            click = ClickedResult(
                document_id=document_id,
                position=position,
                clicked_at=self._timestamp(),
            )
            clicks.append(msgspec.to_builtins(click))
            await self.store.patch(SEARCH_LOGS, log_id, {"clicked_results": clicks})
            return True
        except Exception:
            logger.exception("Failed to record click on %s", log_id)
            return False

    async def logs_since(self, days: int) -> list[SearchLog]:
        """Search logs written in the last ``days`` days."""
        cutoff = self._timestamp(self.clock() - timedelta(days=days))
        where = Query(conditions=[Condition("timestamp", Operator.GTE, cutoff)])
        records = await self.store.fetch(StoreQuery(where=where), SEARCH_LOGS)
        return [msgspec.convert(record, SearchLog) for record in records]

    async def popular_searches(self, limit: int = 10, days: int = 30) -> list[PopularSearch]:
        """Most frequent non-empty queries, case-insensitively grouped.

        Returns an empty list when the logs cannot be read.
        """
        try:
            logs = await self.logs_since(days)
        except Exception as e:
            logger.warning("Popular searches unavailable: %s", e)
            return []

        counts: Counter[str] = Counter()
        totals: Counter[str] = Counter()
        display: dict[str, str] = {}

        for log in logs:
            normalized = log.query.strip().lower()
            if not normalized:
                continue
            display.setdefault(normalized, log.query.strip())
            counts[normalized] += 1
            totals[normalized] += log.results_count

        return [
            PopularSearch(
                query=display[key],
                count=count,
                avg_results=round(totals[key] / count, 2),
            )
            for key, count in counts.most_common(limit)
        ]

    async def overview(self, days: int = 7) -> SearchOverview:
        """Totals, unique users, zero-result rate and daily trend.

        An unreadable log store gives an empty overview.
        """
        try:
            logs = await self.logs_since(days)
        except Exception as e:
            logger.warning("Search overview unavailable: %s", e)
            return SearchOverview()
        if not logs:
            return SearchOverview()

        total = len(logs)
        zero = sum(1 for log in logs if log.results_count == 0)
        daily = Counter(log.timestamp[:10] for log in logs)

        return SearchOverview(
            total_searches=total,
            unique_users=len({log.user_id or log.session_id for log in logs}),
            avg_results=round(sum(log.results_count for log in logs) / total, 2),
            zero_result_rate=round(zero / total * 100, 2),
            daily_trend=sorted(daily.items()),
        )
