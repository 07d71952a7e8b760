"""
SQLAlchemy ORM models for InsightFlow.

Import models from this module to ensure they're registered with SQLAlchemy.
"""

from insightflow.models.base import Base, UUIDMixin, ModelMixin
from insightflow.models.user import User
from insightflow.models.analysis import UserAnalysis, AnalysisStatus
from insightflow.models.comparison import ComparisonResult
from insightflow.models.monitored_company import MonitoredCompany
from insightflow.models.sentiment import SentimentData

__all__ = [
    # Base classes
    "Base",
    "UUIDMixin",
    "ModelMixin",
    # Models
    "User",
    "UserAnalysis",
    "AnalysisStatus",
    "ComparisonResult",
    "MonitoredCompany",
    "SentimentData",
]
