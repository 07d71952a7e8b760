"""
ComparisonResult repository.
"""

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from insightflow.models.comparison import ComparisonResult


class ComparisonRepository:
    """
    Repository for saved comparisons.

    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        requested_by: str,
        comparison: Dict[str, Any],
        comparison_type: str = "existing",
        saved_analysis_ids: Optional[List[str]] = None,
        analyses: Optional[List[Dict[str, Any]]] = None,
    ) -> ComparisonResult:
        """
        Persist a computed comparison.

        Args:
            requested_by: Owner user id
            comparison: Output of ComparisonService plus chart keys
                (metrics, benchmarks, insights, investment_recommendations,
                radar_chart, bar_graph, scatter_plot)
            comparison_type: "existing" or "mixed"
            saved_analysis_ids: Ids of stored analyses used
            analyses: Snapshots of the compared analyses (charts stripped)
        """
        row = ComparisonResult(
            requested_by=requested_by,
            comparison_type=comparison_type,
            investment_recommendations=comparison.get("investment_recommendations"),
            radar_chart=comparison.get("radar_chart"),
            bar_graph=comparison.get("bar_graph"),
            scatter_plot=comparison.get("scatter_plot"),
        )
        row.set_field("saved_analysis_ids", saved_analysis_ids or [])
        row.set_field("analyses", analyses or [])
        row.set_field("metrics", comparison.get("metrics"))
        row.set_field("benchmarks", comparison.get("benchmarks"))
        row.set_field("insights", comparison.get("insights"))

        self.session.add(row)
        await self.session.flush()
        await self.session.refresh(row)
        return row

    async def get(self, comparison_id: str) -> Optional[ComparisonResult]:
        result = await self.session.execute(
            select(ComparisonResult).where(ComparisonResult.id == comparison_id)
        )
        return result.scalar_one_or_none()

    async def list_for_user(
        self,
        user_id: str,
        comparison_type: Optional[str] = None,
        page: int = 0,
        size: int = 10,
    ) -> Tuple[List[ComparisonResult], int]:
        """
        Page through a user's saved comparisons, newest first.

        Args:
            page: Zero-based page index
            size: Page size

        Returns:
            (rows on the page, total matching rows)
        """
        conditions = [ComparisonResult.requested_by == user_id]
        if comparison_type:
            conditions.append(ComparisonResult.comparison_type == comparison_type)

        total = await self.session.execute(
            select(func.count()).select_from(ComparisonResult).where(*conditions)
        )
        stmt = (
            select(ComparisonResult)
            .where(*conditions)
            .order_by(ComparisonResult.comparison_date.desc())
            .offset(page * size)
            .limit(size)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), int(total.scalar_one())

    async def delete(self, comparison_id: str) -> None:
        await self.session.execute(
            delete(ComparisonResult).where(ComparisonResult.id == comparison_id)
        )
        await self.session.flush()
