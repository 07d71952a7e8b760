"""
Pydantic schemas for multi-company comparison endpoints.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MIN_COMPARISON_ITEMS = 2
MAX_COMPARISON_ITEMS = 5


class CompareExistingRequest(BaseModel):
    """
    Compare analyses the user already ran.

    Attributes:
        analysis_ids: 2 to 5 UserAnalysis ids
        save_result: Persist the comparison
    """
    model_config = ConfigDict(populate_by_name=True)

    analysis_ids: List[str] = Field(alias="analysisIds", description="Analyses to compare")
    save_result: bool = Field(default=False, alias="saveResult", description="Persist the comparison")

    @field_validator("analysis_ids")
    @classmethod
    def validate_count(cls, v: List[str]) -> List[str]:
        ids = [i for i in v if i]
        if not MIN_COMPARISON_ITEMS <= len(ids) <= MAX_COMPARISON_ITEMS:
            raise ValueError("Provide 2 to 5 analysis IDs")
        return ids


class SaveComparisonRequest(BaseModel):
    """Comparison payload as returned by the compare endpoints."""
    model_config = ConfigDict(extra="ignore")

    comparison_type: str = Field(default="existing")
    saved_analysis_ids: List[str] = Field(default_factory=list)
    analyses: List[Dict[str, Any]] = Field(default_factory=list)
    metrics: List[Dict[str, Any]] = Field(default_factory=list)
    benchmarks: Dict[str, Any] = Field(default_factory=dict)
    insights: List[str] = Field(default_factory=list)
    investment_recommendations: Optional[str] = None
    radar_chart: Optional[str] = None
    bar_graph: Optional[str] = None
    scatter_plot: Optional[str] = None


class SaveComparisonResponse(BaseModel):
    id: str
    message: str
    comparison_date: str


class ComparisonSummary(BaseModel):
    id: str
    comparison_date: str
    comparison_type: str
    number_of_companies: int
    company_names: List[Optional[str]]


class SavedComparisonsPage(BaseModel):
    """
    One page of saved comparisons, newest first.

    Attributes:
        content: Comparison summaries on this page
        total_elements: Total matching comparisons
        total_pages: Number of pages at this size
        current_page: Zero-based page index
        page_size: Requested page size
        has_next / has_previous: Navigation flags
    """
    content: List[ComparisonSummary]
    total_elements: int
    total_pages: int
    current_page: int
    page_size: int
    has_next: bool
    has_previous: bool
