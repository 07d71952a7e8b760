"""
ComparisonResult model.

Saved multi-company comparison: the metric table, benchmarks, generated
insights, investment recommendations and the three comparison charts.
"""

from typing import Any, Dict

from sqlalchemy import Column, String, Text, Index

from insightflow.models.base import Base, UUIDMixin, ModelMixin, utc_now_iso, load_json, dump_json


class ComparisonResult(Base, UUIDMixin, ModelMixin):
    """
    Persisted comparison between 2-5 company analyses.

    Attributes:
        requested_by: User.id of the owner
        comparison_date: ISO timestamp
        comparison_type: "existing" (saved analyses only) or "mixed"
        saved_analysis_ids: JSON list of UserAnalysis ids used
        analyses: JSON list of the analysis snapshots compared
        metrics: JSON list of per-company metric dicts
        benchmarks: JSON dict of averages
        insights: JSON list of insight sentences
        investment_recommendations: LLM-written recommendation text
        radar_chart / bar_graph / scatter_plot: base64 PNG charts
    """

    __tablename__ = "comparison_results"

    requested_by = Column(String, nullable=False, index=True)
    comparison_date = Column(String, nullable=False, default=utc_now_iso)
    comparison_type = Column(String(16), nullable=False, default="existing")
    saved_analysis_ids = Column(Text, nullable=False, default="[]")
    analyses = Column(Text, nullable=False, default="[]")
    metrics = Column(Text, nullable=False, default="[]")
    benchmarks = Column(Text, nullable=False, default="{}")
    insights = Column(Text, nullable=False, default="[]")
    investment_recommendations = Column(Text, nullable=True)
    radar_chart = Column(Text, nullable=True)
    bar_graph = Column(Text, nullable=True)
    scatter_plot = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_comparison_owner_date", "requested_by", "comparison_date"),
    )

    _JSON_FIELDS = {
        "saved_analysis_ids": list,
        "analyses": list,
        "metrics": list,
        "benchmarks": dict,
        "insights": list,
    }

    def get_field(self, name: str) -> Any:
        return load_json(getattr(self, name), self._JSON_FIELDS[name]())

    def set_field(self, name: str, value: Any) -> None:
        setattr(self, name, dump_json(value if value is not None else self._JSON_FIELDS[name]()))

    def company_names(self) -> list:
        return [a.get("company_name") for a in self.get_field("analyses")]

    def to_response(self, include_charts: bool = True) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "requested_by": self.requested_by,
            "comparison_date": self.comparison_date,
            "comparison_type": self.comparison_type,
            "company_names": self.company_names(),
            "investment_recommendations": self.investment_recommendations,
        }
        for name in self._JSON_FIELDS:
            data[name] = self.get_field(name)
        if include_charts:
            data["radar_chart"] = self.radar_chart
            data["bar_graph"] = self.bar_graph
            data["scatter_plot"] = self.scatter_plot
        return data
