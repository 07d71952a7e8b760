"""
Tests for SentimentScheduler.

The fetcher is an AsyncMock that produces fresh unsaved SentimentData
records; storage goes to the in-memory test database.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import func, select

from insightflow.core.database import async_session_maker
from insightflow.models.base import utc_now_iso
from insightflow.models.sentiment import SentimentData
from insightflow.services.monitored_companies import MonitoredCompanyService
from insightflow.services.sentiment_scheduler import SentimentScheduler


def _make_records(company, sources=None):
    return [
        SentimentData(
            company_name=company,
            sentiment_score=60.0,
            risk_rating=4.0,
            source_type=source,
            source_identifier=f"https://example.com/{company.lower()}/{source}",
            timestamp=utc_now_iso(),
        )
        for source in (sources or ("news", "social"))
    ]


@pytest.fixture
def fetcher():
    mock = AsyncMock()
    mock.fetch_and_score.side_effect = _make_records
    return mock


@pytest.fixture
def trend_service():
    return MagicMock()


@pytest.fixture
def scheduler(db_session, fetcher, trend_service):
    return SentimentScheduler(fetcher=fetcher, trend_service=trend_service, interval_seconds=3600)


async def _monitor(*companies):
    async with async_session_maker() as session:
        service = MonitoredCompanyService(session)
        for company in companies:
            await service.add(company)
        await session.commit()


async def _stored_count(company=None):
    async with async_session_maker() as session:
        stmt = select(func.count()).select_from(SentimentData)
        if company:
            stmt = stmt.where(SentimentData.company_name == company)
        return (await session.execute(stmt)).scalar_one()


@pytest.mark.asyncio
class TestCollection:
    """Tests for collection runs."""

    async def test_collect_daily_sentiment(self, scheduler, fetcher, trend_service):
        """
        Arrange: Two monitored companies
        Act: Run a collection
        Assert: Both sources stored for each, trend cache invalidated
        """
        await _monitor("Tesla", "Ford")

        saved = await scheduler.collect_daily_sentiment()

        assert saved == {"Tesla": 2, "Ford": 2}
        assert await _stored_count() == 4
        assert scheduler.run_count == 1
        assert scheduler.last_run_at is not None
        trend_service.invalidate.assert_any_call("Tesla")
        trend_service.invalidate.assert_any_call("Ford")

    async def test_duplicate_sources_not_stored_twice(self, scheduler):
        await _monitor("Tesla")

        await scheduler.collect_daily_sentiment()
        second = await scheduler.collect_daily_sentiment()

        assert second == {"Tesla": 0}
        assert await _stored_count("Tesla") == 2

    async def test_duplicates_within_one_fetch(self, scheduler, fetcher):
        fetcher.fetch_and_score.side_effect = lambda company, sources=None: (
            _make_records(company, ["news"]) + _make_records(company, ["news"])
        )

        saved = await scheduler.collect_for_companies(["Tesla"])

        assert saved == {"Tesla": 1}

    async def test_skip_company_next_run(self, scheduler, fetcher):
        """
        Arrange: Tesla and Ford monitored, Ford marked to skip
        Act: Run twice
        Assert: Ford left out of the first run only
        """
        await _monitor("Tesla", "Ford")

        assert await scheduler.skip_company_next_run("Ford") is True
        first = await scheduler.collect_daily_sentiment()
        fetcher.fetch_and_score.reset_mock()
        await scheduler.collect_daily_sentiment()

        assert set(first) == {"Tesla"}
        fetched = [call.args[0] for call in fetcher.fetch_and_score.call_args_list]
        assert "Ford" in fetched

    async def test_skip_unmonitored_company(self, scheduler):
        assert await scheduler.skip_company_next_run("Nobody") is False

    async def test_failing_company_does_not_stop_run(self, scheduler, fetcher):
        await _monitor("Tesla", "Ford")

        def fetch(company, sources=None):
            if company == "Tesla":
                raise RuntimeError("boom")
            return _make_records(company)

        fetcher.fetch_and_score.side_effect = fetch

        saved = await scheduler.collect_daily_sentiment()

        assert saved == {"Ford": 2}

    async def test_collect_for_companies_ignores_blanks(self, scheduler):
        saved = await scheduler.collect_for_companies(["Nvidia", "  "])

        assert saved == {"Nvidia": 2}
        assert await _stored_count("Nvidia") == 2

    async def test_test_with_companies_saves_nothing(self, scheduler, fetcher):
        results = await scheduler.test_with_companies(["Tesla"], ["news"])

        assert list(results) == ["Tesla"]
        assert results["Tesla"][0]["source_type"] == "news"
        assert results["Tesla"][0]["sentiment_score"] == 60.0
        assert await _stored_count() == 0
        fetcher.fetch_and_score.assert_awaited_once_with("Tesla", ["news"])

    async def test_test_with_companies_defaults_to_monitored(self, scheduler):
        await _monitor("Tesla")

        results = await scheduler.test_with_companies()

        assert list(results) == ["Tesla"]
        assert len(results["Tesla"]) == 2


@pytest.mark.asyncio
class TestCompanyManagement:
    """Tests for monitoring list operations exposed by the scheduler."""

    async def test_add_remove_replace(self, scheduler):
        assert await scheduler.add_company("Tesla", added_by="ada") is True
        assert await scheduler.add_company("TESLA") is False
        assert await scheduler.get_monitored_companies() == ["Tesla"]

        assert await scheduler.remove_company("Tesla") is True
        assert await scheduler.get_monitored_companies() == []

        active = await scheduler.replace_companies(["Ford", "Apple"])
        assert set(active) == {"Ford", "Apple"}


@pytest.mark.asyncio
class TestLifecycle:
    """Tests for the background task."""

    async def test_start_runs_and_stop_ends_loop(self, db_session, fetcher, trend_service):
        """
        Arrange: Very short interval
        Act: Start, wait for a few cycles, stop
        Assert: At least one run happened and the task is gone
        """
        scheduler = SentimentScheduler(fetcher=fetcher, trend_service=trend_service, interval_seconds=0.05)

        scheduler.start()
        assert scheduler.is_running
        await asyncio.sleep(0.3)
        await scheduler.stop(timeout=2)

        assert scheduler.run_count >= 1
        assert scheduler.is_running is False

    async def test_stop_before_first_run(self, scheduler):
        scheduler.start()
        await scheduler.stop(timeout=2)

        assert scheduler.run_count == 0
        assert scheduler.is_running is False

    async def test_start_twice_keeps_one_task(self, scheduler):
        scheduler.start()
        task = scheduler._task
        scheduler.start()

        assert scheduler._task is task
        await scheduler.stop(timeout=2)
