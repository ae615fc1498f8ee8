"""Tests for search analytics."""

from datetime import datetime, timedelta, timezone

import pytest

from memsearch.exceptions import StoreError
from memsearch.search.analytics import (
    PopularSearch,
    SearchAnalytics,
    SearchLog,
    SearchOverview,
)
from memsearch.search.models import SearchFilters
from memsearch.storage import SEARCH_LOGS, MemoryStore


class Clock:
    """Manually advanced UTC clock."""

    def __init__(self):
        self.now = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def log_store():
    return MemoryStore()


@pytest.fixture
def analytics(log_store, clock):
    return SearchAnalytics(log_store, clock=clock)


class TestLogSearch:
    """Test writing search logs."""

    @pytest.mark.asyncio
    async def test_log_written(self, analytics, log_store):
        log_id = await analytics.log_search(
            "lärare", SearchFilters(tags=["lärare"]), 3, user_id="user-1"
        )

        record = await log_store.get(SEARCH_LOGS, log_id)
        assert record["query"] == "lärare"
        assert record["results_count"] == 3
        assert record["user_id"] == "user-1"
        assert record["filters"] == {"tags": ["lärare"]}
        assert record["timestamp"] == "2026-10-18T12:00:00+00:00"
        assert record["clicked_results"] == []
        assert len(record["session_id"]) == 32

    @pytest.mark.asyncio
    async def test_dict_filters_and_session(self, analytics, log_store):
        log_id = await analytics.log_search(
            "anna", {"organization": "org-1"}, 0, session_id="abc"
        )

        record = await log_store.get(SEARCH_LOGS, log_id)
        assert record["filters"] == {"organization": "org-1"}
        assert record["session_id"] == "abc"
        assert record["user_id"] is None

    @pytest.mark.asyncio
    async def test_disabled(self, log_store):
        analytics = SearchAnalytics(log_store, enabled=False)

        assert await analytics.log_search("anna", None, 1) is None
        assert await log_store.list_records(SEARCH_LOGS) == []

    @pytest.mark.asyncio
    async def test_store_failure_never_raises(self, flaky_store, clock):
        analytics = SearchAnalytics(flaky_store([], fail=["create"]), clock=clock)

        assert await analytics.log_search("anna", None, 1) is None


class TestRecordClick:
    """Test click tracking."""

    @pytest.mark.asyncio
    async def test_click_appended(self, analytics, log_store, clock):
        log_id = await analytics.log_search("anna", None, 2)
        clock.advance(seconds=30)

        assert await analytics.record_click(log_id, "anna", 1)
        assert await analytics.record_click(log_id, "erik", 2)

        record = await log_store.get(SEARCH_LOGS, log_id)
        assert record["clicked_results"] == [
            {"document_id": "anna", "position": 1, "clicked_at": "2026-10-18T12:00:30+00:00"},
            {"document_id": "erik", "position": 2, "clicked_at": "2026-10-18T12:00:30+00:00"},
        ]

    @pytest.mark.asyncio
    async def test_unknown_log(self, analytics):
        assert not await analytics.record_click("missing", "anna", 1)


class TestReports:
    """Test popular searches and the overview."""

    @pytest.mark.asyncio
    async def test_logs_since_window(self, analytics, clock):
        await analytics.log_search("old", None, 1)
        clock.advance(days=10)
        await analytics.log_search("new", None, 1)

        logs = await analytics.logs_since(7)

        assert [log.query for log in logs] == ["new"]
        assert isinstance(logs[0], SearchLog)

    @pytest.mark.asyncio
    async def test_popular_searches(self, analytics):
        for query, results in [
            ("Anna", 2),
            ("anna ", 4),
            ("ANNA", 0),
            ("erik", 1),
            ("", 9),
            ("erik", 1),
            ("maria", 5),
        ]:
            await analytics.log_search(query, None, results)

        popular = await analytics.popular_searches(limit=2)

        assert popular == [
            PopularSearch(query="Anna", count=3, avg_results=2.0),
            PopularSearch(query="erik", count=2, avg_results=1.0),
        ]

    @pytest.mark.asyncio
    async def test_popular_searches_empty(self, analytics):
        assert await analytics.popular_searches() == []

    @pytest.mark.asyncio
    async def test_overview(self, analytics, clock):
        await analytics.log_search("anna", None, 3, user_id="u1")
        await analytics.log_search("erik", None, 0, user_id="u1")
        clock.advance(days=1)
        await analytics.log_search("maria", None, 0, session_id="s1")
        await analytics.log_search("karin", None, 1, session_id="s2")

        overview = await analytics.overview(days=7)

        assert overview.total_searches == 4
        assert overview.unique_users == 3
        assert overview.avg_results == 1.0
        assert overview.zero_result_rate == 50.0
        assert overview.daily_trend == [("2026-10-18", 2), ("2026-10-19", 2)]

    @pytest.mark.asyncio
    async def test_overview_without_logs(self, analytics):
        assert await analytics.overview() == SearchOverview()

    @pytest.mark.asyncio
    async def test_reports_degrade_on_store_failure(self, flaky_store, clock, caplog):
        analytics = SearchAnalytics(flaky_store([], fail=["fetch_logs"]), clock=clock)
        await analytics.log_search("anna", None, 3)

        assert await analytics.popular_searches() == []
        assert await analytics.overview() == SearchOverview()
        assert "Popular searches unavailable" in caplog.text
        assert "Search overview unavailable" in caplog.text

    @pytest.mark.asyncio
    async def test_logs_since_propagates_store_failure(self, flaky_store, clock):
        analytics = SearchAnalytics(flaky_store([], fail=["fetch_logs"]), clock=clock)

        with pytest.raises(StoreError):
            await analytics.logs_since(7)
