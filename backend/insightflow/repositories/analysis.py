"""
UserAnalysis repository.

Stores analysis runs and answers the ownership and status queries used
by the profile and comparison endpoints.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from insightflow.models.analysis import UserAnalysis, AnalysisStatus


class AnalysisRepository:
    """
    Repository for UserAnalysis rows.

    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        user_id: str,
        company_name: str,
        status: str = AnalysisStatus.PENDING,
        result: Optional[Dict[str, Any]] = None,
        uploaded_file_name: Optional[str] = None,
    ) -> UserAnalysis:
        """
        Insert a new analysis.

        Args:
            user_id: Owner id
            company_name: Analysed company
            status: Initial status (PENDING while running, COMPLETED for
                client-submitted results)
            result: Optional artifact dict applied via ``apply_result``
            uploaded_file_name: Name of the document uploaded with the request
        """
        analysis = UserAnalysis(
            user_id=user_id,
            company_name=company_name,
            status=status,
            uploaded_file_name=uploaded_file_name,
        )
        if result:
            analysis.apply_result(result)

        self.session.add(analysis)
        await self.session.flush()
        await self.session.refresh(analysis)
        return analysis

    async def get(self, analysis_id: str) -> Optional[UserAnalysis]:
        result = await self.session.execute(
            select(UserAnalysis).where(UserAnalysis.id == analysis_id)
        )
        return result.scalar_one_or_none()

    async def list_for_user(
        self,
        user_id: str,
        status: Optional[str] = None,
    ) -> List[UserAnalysis]:
        """List a user's analyses, newest first, optionally by status."""
        stmt = select(UserAnalysis).where(UserAnalysis.user_id == user_id)
        if status is not None:
            stmt = stmt.where(UserAnalysis.status == status)
        stmt = stmt.order_by(UserAnalysis.analysis_date.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_for_user(self, user_id: str, status: Optional[str] = None) -> int:
        stmt = select(func.count()).select_from(UserAnalysis).where(UserAnalysis.user_id == user_id)
        if status is not None:
            stmt = stmt.where(UserAnalysis.status == status)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def save(self, analysis: UserAnalysis) -> UserAnalysis:
        """Flush pending changes on an already-tracked analysis."""
        self.session.add(analysis)
        await self.session.flush()
        return analysis
