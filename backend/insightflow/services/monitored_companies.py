"""
Monitored company management.
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from insightflow.core.config import settings
from insightflow.repositories.monitored_company import MonitoredCompanyRepository

logger = logging.getLogger(__name__)


SYSTEM_USER = "system"


class MonitoredCompanyService:
    """
    Maintains the set of companies the sentiment scheduler collects for.

    Names are matched case-insensitively. Removal deactivates the row; only
    ``delete`` removes it.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repository = MonitoredCompanyRepository(session)

    async def initialize_defaults(self, companies: Optional[Iterable[str]] = None) -> int:
        """Seed the default companies when the table is empty. Returns rows added."""
        if await self.repository.count() > 0:
            return 0

        added = 0
        for name in companies if companies is not None else settings.default_monitored_companies:
            if name and name.strip():
                await self.repository.create(name, added_by=SYSTEM_USER)
                added += 1

        logger.info("Seeded default monitored companies", extra={"count": added})
        return added

    async def list_active(self) -> List[str]:
        return [company.company_name for company in await self.repository.list_active()]

    async def is_monitored(self, company_name: str) -> bool:
        company = await self.repository.get_by_name(company_name)
        return company is not None and company.active

    async def add(self, company_name: str, added_by: Optional[str] = None) -> bool:
        """
        Start monitoring a company.

        Returns:
            False for a blank name or an already active company
        """
        if not company_name or not company_name.strip():
            return False

        existing = await self.repository.get_by_name(company_name)
        if existing is None:
            await self.repository.create(company_name, added_by=added_by)
        elif existing.active:
            return False
        else:
            existing.active = True
            await self.session.flush()

        logger.info("Added company to monitoring", extra={"company_name": company_name.strip()})
        return True

    async def remove(self, company_name: str) -> bool:
        """Deactivate a company. False if it is not currently monitored."""
        existing = await self.repository.get_by_name(company_name or "")
        if existing is None or not existing.active:
            return False

        existing.active = False
        await self.session.flush()
        logger.info("Removed company from monitoring", extra={"company_name": existing.company_name})
        return True

    async def delete(self, company_name: str) -> bool:
        return await self.repository.delete_by_name(company_name or "")

    async def replace(self, company_names: Iterable[str], added_by: Optional[str] = None) -> List[str]:
        """
        Make ``company_names`` the exact active set.

        Returns:
            Active company names after the update
        """
        wanted = {}
        for name in company_names or []:
            if name and name.strip():
                wanted.setdefault(name.strip().lower(), name.strip())

        for company in await self.repository.list_all():
            if company.company_name.lower() not in wanted and company.active:
                company.active = False
        await self.session.flush()

        for name in wanted.values():
            await self.add(name, added_by=added_by)

        active = await self.list_active()
        logger.info("Updated monitored companies list", extra={"companies": active})
        return active
