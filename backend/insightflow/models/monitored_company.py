"""
MonitoredCompany model.

Companies included in the periodic sentiment collection. Removal is a
soft deactivation so history about who added a company is kept.
"""

from sqlalchemy import Column, String, Boolean

from insightflow.models.base import Base, UUIDMixin, ModelMixin, utc_now_iso


class MonitoredCompany(Base, UUIDMixin, ModelMixin):
    """
    Attributes:
        company_name: Display name (unique, matched case-insensitively)
        active: Whether the scheduler includes the company
        date_added: When the company was first added (ISO)
        last_modified: Last activation change (ISO)
        added_by: Who added it ("system" for seeded defaults)
    """

    __tablename__ = "monitored_companies"

    company_name = Column(String(255), nullable=False, unique=True, index=True)
    active = Column(Boolean, nullable=False, default=True)
    date_added = Column(String, nullable=False, default=utc_now_iso)
    last_modified = Column(String, nullable=False, default=utc_now_iso, onupdate=utc_now_iso)
    added_by = Column(String(255), nullable=True)
