"""
Periodic sentiment collection.

A single asyncio task wakes every ``sentiment_interval_seconds``, fetches
news and social sentiment for every active monitored company and stores
the new points. The task is started and stopped from the application
lifespan.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set

from sqlalchemy.ext.asyncio import AsyncSession

from insightflow.core.config import settings
from insightflow.core.database import async_session_maker
from insightflow.repositories.sentiment import SentimentRepository
from insightflow.services.monitored_companies import MonitoredCompanyService
from insightflow.services.sentiment_fetcher import DEFAULT_SOURCES, SentimentFetcherService
from insightflow.services.sentiment_trends import SentimentTrendService

logger = logging.getLogger(__name__)


class SentimentScheduler:
    """
    Background sentiment collector.

    Attributes:
        fetcher: Source fetching and scoring
        trend_service: Trend cache to invalidate after new data
        session_factory: Callable returning an AsyncSession context manager
        interval_seconds: Delay between collection runs
        dedupe_hours: Window in which a source identifier is stored once
    """

    def __init__(
        self,
        fetcher: SentimentFetcherService,
        trend_service: SentimentTrendService,
        session_factory: Callable[[], AsyncSession] = async_session_maker,
        interval_seconds: Optional[int] = None,
        dedupe_hours: Optional[int] = None,
    ):
        self.fetcher = fetcher
        self.trend_service = trend_service
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds or settings.sentiment_interval_seconds
        self.dedupe_hours = dedupe_hours or settings.sentiment_dedupe_hours

        self._skip_next_run: Set[str] = set()
        self._skip_lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self.run_count = 0
        self.last_run_at: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            logger.warning("Sentiment scheduler already running")
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run())
        logger.info("Sentiment scheduler started", extra={"interval_seconds": self.interval_seconds})

    async def stop(self, timeout: float = 10.0) -> None:
        """Signal the loop to stop and wait for it, cancelling after ``timeout``."""
        if self._task is None:
            return

        self._stop_event.set()
        try:
            await asyncio.wait_for(self._task, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Sentiment scheduler stop timeout, cancelling task")
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        finally:
            self._task = None
        logger.info("Sentiment scheduler stopped", extra={"run_count": self.run_count})

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
                break
            except asyncio.TimeoutError:
                pass

            try:
                await self.collect_daily_sentiment()
            except Exception as e:
                logger.error(f"Sentiment collection run failed: {e}", exc_info=True)

    async def collect_daily_sentiment(self) -> Dict[str, int]:
        """
        Collect and store sentiment for every active company.

        Companies marked with ``skip_company_next_run`` are left out of this
        run only.

        Returns:
            Mapping of company name to number of points saved
        """
        correlation_id = str(uuid.uuid4())
        companies = await self.get_monitored_companies()

        async with self._skip_lock:
            skipped = {name.lower() for name in self._skip_next_run}
            self._skip_next_run.clear()
        companies = [c for c in companies if c.lower() not in skipped]

        logger.info(
            "Starting sentiment collection",
            extra={"companies": companies, "correlation_id": correlation_id}
        )

        saved: Dict[str, int] = {}
        for company in companies:
            try:
                saved[company] = await self._collect_company(company, DEFAULT_SOURCES)
            except Exception as e:
                logger.error(
                    f"Error processing sentiment for {company}: {e}",
                    extra={"company_name": company, "correlation_id": correlation_id},
                    exc_info=True
                )

        self.run_count += 1
        self.last_run_at = datetime.utcnow().isoformat()
        logger.info(
            "Completed sentiment collection",
            extra={"saved": saved, "correlation_id": correlation_id}
        )
        return saved

    async def _collect_company(self, company: str, sources: Sequence[str]) -> int:
        records = await self.fetcher.fetch_and_score(company, sources)
        since = (datetime.utcnow() - timedelta(hours=self.dedupe_hours)).isoformat()

        async with self.session_factory() as session:
            repository = SentimentRepository(session)
            fresh = []
            seen: Set[str] = set()
            for record in records:
                identifier = record.source_identifier
                if identifier in seen or await repository.source_seen_since(company, identifier, since):
                    continue
                seen.add(identifier)
                fresh.append(record)

            await repository.add_many(fresh)
            await session.commit()

        if fresh:
            self.trend_service.invalidate(company)

        logger.info(
            "Stored sentiment data",
            extra={"company_name": company, "fetched": len(records), "saved": len(fresh)}
        )
        return len(fresh)

    async def collect_for_companies(self, companies: Iterable[str]) -> Dict[str, int]:
        """Fetch and store sentiment for the given companies right away."""
        saved: Dict[str, int] = {}
        for company in companies:
            company = company.strip()
            if company:
                saved[company] = await self._collect_company(company, DEFAULT_SOURCES)
        return saved

    async def test_with_companies(
        self,
        companies: Optional[Sequence[str]] = None,
        sources: Optional[Sequence[str]] = None,
    ) -> Dict[str, List[Dict[str, Any]]]:
        """
        Fetch and score without saving.

        Defaults to all monitored companies and both sources.

        Returns:
            Mapping of company name to the points that would be saved
        """
        companies = [c.strip() for c in companies or [] if c.strip()] or await self.get_monitored_companies()
        sources = [s.strip() for s in sources or [] if s.strip()] or list(DEFAULT_SOURCES)

        logger.info("Testing sentiment collection", extra={"companies": companies, "sources": sources})

        results: Dict[str, List[Dict[str, Any]]] = {}
        for company in companies:
            records = await self.fetcher.fetch_and_score(company, sources)
            results[company] = [
                {
                    "company_name": r.company_name,
                    "sentiment_score": r.sentiment_score,
                    "risk_rating": r.risk_rating,
                    "source_type": r.source_type,
                    "source_identifier": r.source_identifier,
                }
                for r in records
            ]
            for point in results[company]:
                logger.info("Would save sentiment point", extra=point)
        return results

    async def get_monitored_companies(self) -> List[str]:
        async with self.session_factory() as session:
            return await MonitoredCompanyService(session).list_active()

    async def add_company(self, company: str, added_by: Optional[str] = None) -> bool:
        async with self.session_factory() as session:
            added = await MonitoredCompanyService(session).add(company, added_by=added_by)
            await session.commit()
        return added

    async def remove_company(self, company: str) -> bool:
        async with self.session_factory() as session:
            removed = await MonitoredCompanyService(session).remove(company)
            await session.commit()
        return removed

    async def replace_companies(self, companies: Iterable[str], added_by: Optional[str] = None) -> List[str]:
        async with self.session_factory() as session:
            active = await MonitoredCompanyService(session).replace(companies, added_by=added_by)
            await session.commit()
        return active

    async def skip_company_next_run(self, company: str) -> bool:
        """Leave a monitored company out of the next run. False if not monitored."""
        async with self.session_factory() as session:
            monitored = await MonitoredCompanyService(session).is_monitored(company)
        if not monitored:
            return False

        async with self._skip_lock:
            self._skip_next_run.add(company.strip())
        logger.info("Company will be skipped in next run", extra={"company_name": company})
        return True
