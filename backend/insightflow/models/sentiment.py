"""
SentimentData model.

A single scored observation (news article or social snippet) for a
company, used to build sentiment and risk trends over time.
"""

from typing import Any, Dict

from sqlalchemy import Column, String, Float, Text, Index

from insightflow.models.base import Base, UUIDMixin, ModelMixin, utc_now_iso, load_json, dump_json


class SentimentData(Base, UUIDMixin, ModelMixin):
    """
    Attributes:
        company_name: Company the observation is about
        sentiment_score: 0 (very negative) to 100 (very positive)
        risk_rating: 0 (very low risk) to 10 (very high risk)
        source_type: "news" or "social"
        source_identifier: Article or page URL, used for de-duplication
        timestamp: When the observation was scored (ISO, UTC)
        metadata_json: Extra fields (text_length, word_count, ...)
    """

    __tablename__ = "sentiment_data"

    company_name = Column(String(255), nullable=False)
    sentiment_score = Column(Float, nullable=False, default=0.0)
    risk_rating = Column(Float, nullable=False, default=0.0)
    source_type = Column(String(32), nullable=False)
    source_identifier = Column(String, nullable=True)
    timestamp = Column(String, nullable=False, default=utc_now_iso)
    # "metadata" is reserved on declarative classes
    metadata_json = Column("metadata", Text, nullable=False, default="{}")

    __table_args__ = (
        Index("idx_sentiment_company_time", "company_name", "timestamp"),
        Index("idx_sentiment_source_identifier", "company_name", "source_identifier"),
    )

    def get_metadata(self) -> Dict[str, Any]:
        return load_json(self.metadata_json, {})

    def set_metadata(self, metadata: Dict[str, Any]) -> None:
        self.metadata_json = dump_json(metadata or {})

    def to_response(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "company_name": self.company_name,
            "sentiment_score": self.sentiment_score,
            "risk_rating": self.risk_rating,
            "source_type": self.source_type,
            "source_identifier": self.source_identifier,
            "timestamp": self.timestamp,
            "metadata": self.get_metadata(),
        }
