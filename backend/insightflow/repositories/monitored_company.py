"""
MonitoredCompany repository.

Company names are matched case-insensitively.
"""

from typing import List, Optional

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from insightflow.models.monitored_company import MonitoredCompany


class MonitoredCompanyRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def count(self) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(MonitoredCompany)
        )
        return int(result.scalar_one())

    async def list_all(self) -> List[MonitoredCompany]:
        result = await self.session.execute(
            select(MonitoredCompany).order_by(MonitoredCompany.date_added)
        )
        return list(result.scalars().all())

    async def list_active(self) -> List[MonitoredCompany]:
        result = await self.session.execute(
            select(MonitoredCompany)
            .where(MonitoredCompany.active.is_(True))
            .order_by(MonitoredCompany.date_added)
        )
        return list(result.scalars().all())

    async def get_by_name(self, company_name: str) -> Optional[MonitoredCompany]:
        result = await self.session.execute(
            select(MonitoredCompany).where(
                func.lower(MonitoredCompany.company_name) == company_name.strip().lower()
            )
        )
        return result.scalar_one_or_none()

    async def create(self, company_name: str, added_by: Optional[str] = None) -> MonitoredCompany:
        company = MonitoredCompany(
            company_name=company_name.strip(),
            active=True,
            added_by=added_by,
        )
        self.session.add(company)
        await self.session.flush()
        return company

    async def delete_by_name(self, company_name: str) -> bool:
        result = await self.session.execute(
            delete(MonitoredCompany).where(
                func.lower(MonitoredCompany.company_name) == company_name.strip().lower()
            )
        )
        await self.session.flush()
        return result.rowcount > 0
