"""
SentimentData repository.
"""

from typing import Iterable, List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from insightflow.models.sentiment import SentimentData


class SentimentRepository:
    """
    Repository for scored sentiment observations.

    Timestamps are ISO strings, so range filters compare lexicographically.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add_many(self, records: Iterable[SentimentData]) -> int:
        count = 0
        for record in records:
            self.session.add(record)
            count += 1
        await self.session.flush()
        return count

    async def list_for_company(self, company_name: str, since_iso: str) -> List[SentimentData]:
        """Observations for a company at or after ``since_iso``, oldest first."""
        stmt = (
            select(SentimentData)
            .where(
                func.lower(SentimentData.company_name) == company_name.strip().lower(),
                SentimentData.timestamp >= since_iso,
            )
            .order_by(SentimentData.timestamp)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def source_seen_since(
        self,
        company_name: str,
        source_identifier: str,
        since_iso: str,
    ) -> bool:
        """True when the same source was stored for the company after ``since_iso``."""
        stmt = (
            select(func.count())
            .select_from(SentimentData)
            .where(
                func.lower(SentimentData.company_name) == company_name.strip().lower(),
                SentimentData.source_identifier == source_identifier,
                SentimentData.timestamp >= since_iso,
            )
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one()) > 0
