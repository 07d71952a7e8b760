"""
UserAnalysis model.

One row per company analysis run by a user, holding every generated
artifact (framework lists, chart images, LinkedIn text) so completed
analyses can be reopened and compared later.
"""

from typing import Any, Dict, Optional

from sqlalchemy import Column, String, Text, Index

from insightflow.models.base import Base, UUIDMixin, ModelMixin, utc_now_iso, load_json, dump_json


class AnalysisStatus:
    """Allowed values for UserAnalysis.status."""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


# Artifact columns holding JSON documents, with the empty value for each
JSON_ARTIFACTS: Dict[str, Any] = {
    "summaries": [],
    "sources": [],
    "swot_lists": None,
    "pestel_lists": None,
    "porter_forces": None,
    "bcg_matrix": None,
    "mckinsey_7s": None,
}

# Artifact columns holding plain text
TEXT_ARTIFACTS = (
    "strategy_recommendations",
    "swot_image",
    "pestel_image",
    "porter_image",
    "bcg_image",
    "mckinsey_image",
    "linkedin_analysis",
)


class UserAnalysis(Base, UUIDMixin, ModelMixin):
    """
    Stored result of a company analysis.

    JSON columns (summaries, sources, swot_lists, pestel_lists,
    porter_forces, bcg_matrix, mckinsey_7s) are read and written through
    ``get_artifact`` / ``set_artifact``.
    """

    __tablename__ = "user_analyses"

    user_id = Column(
        String,
        nullable=False,
        index=True,
        doc="Owner (User.id)"
    )
    company_name = Column(String(255), nullable=False)
    analysis_date = Column(String, nullable=False, default=utc_now_iso)
    status = Column(String(16), nullable=False, default=AnalysisStatus.PENDING)
    error_message = Column(Text, nullable=True)

    summaries = Column(Text, nullable=True)
    sources = Column(Text, nullable=True)
    strategy_recommendations = Column(Text, nullable=True)
    swot_lists = Column(Text, nullable=True)
    swot_image = Column(Text, nullable=True)
    pestel_lists = Column(Text, nullable=True)
    pestel_image = Column(Text, nullable=True)
    porter_forces = Column(Text, nullable=True)
    porter_image = Column(Text, nullable=True)
    bcg_matrix = Column(Text, nullable=True)
    bcg_image = Column(Text, nullable=True)
    mckinsey_7s = Column(Text, nullable=True)
    mckinsey_image = Column(Text, nullable=True)
    linkedin_analysis = Column(Text, nullable=True)

    uploaded_file_name = Column(String(255), nullable=True)

    __table_args__ = (
        Index("idx_user_analysis_user_date", "user_id", "analysis_date"),
    )

    def get_artifact(self, name: str) -> Any:
        """Decode a JSON artifact column."""
        default = JSON_ARTIFACTS[name]
        if isinstance(default, list):
            default = list(default)
        return load_json(getattr(self, name), default)

    def set_artifact(self, name: str, value: Any) -> None:
        """Encode and store a JSON artifact column."""
        if name not in JSON_ARTIFACTS:
            raise KeyError(f"Unknown JSON artifact: {name}")
        setattr(self, name, dump_json(value))

    def apply_result(self, result: Dict[str, Any]) -> None:
        """
        Copy artifacts from an analysis result dict onto the row.

        Keys missing from ``result`` leave the column untouched.
        """
        for name in JSON_ARTIFACTS:
            if name in result:
                self.set_artifact(name, result[name])
        for name in TEXT_ARTIFACTS:
            if name in result:
                setattr(self, name, result[name])

    def to_response(self, include_images: bool = True) -> Dict[str, Any]:
        """
        Serialize to the API shape (snake_case, decoded JSON).

        Args:
            include_images: Drop the base64 chart columns when False
                (used by list endpoints to keep payloads small)
        """
        data: Dict[str, Any] = {
            "id": self.id,
            "user_id": self.user_id,
            "company_name": self.company_name,
            "analysis_date": self.analysis_date,
            "status": self.status,
            "error_message": self.error_message,
            "uploaded_file_name": self.uploaded_file_name,
        }
        for name in JSON_ARTIFACTS:
            data[name] = self.get_artifact(name)
        for name in TEXT_ARTIFACTS:
            if not include_images and name.endswith("_image"):
                continue
            data[name] = getattr(self, name)
        return data

    @property
    def is_completed(self) -> bool:
        return self.status == AnalysisStatus.COMPLETED

    def mark_failed(self, message: Optional[str]) -> None:
        self.status = AnalysisStatus.FAILED
        self.error_message = message

    def __repr__(self) -> str:
        return (
            f"UserAnalysis(id={self.id!r}, company_name={self.company_name!r}, "
            f"status={self.status!r})"
        )
