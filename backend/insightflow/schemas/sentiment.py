"""
Pydantic schemas for sentiment monitoring endpoints.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class SentimentStatusResponse(BaseModel):
    """
    Result of a monitoring management action.

    Attributes:
        status: "success" or "error"
        message: Human-readable outcome
        companies: Active monitored companies after the action
    """
    status: Literal["success", "error"] = Field(description="Outcome")
    message: Optional[str] = Field(default=None, description="Outcome message")
    companies: Optional[List[str]] = Field(default=None, description="Monitored companies")


class CollectionResponse(BaseModel):
    status: Literal["success", "error"]
    message: str
    saved: Dict[str, int] = Field(default_factory=dict, description="Points saved per company")


class TestCollectionResponse(BaseModel):
    status: Literal["success", "error"]
    message: str
    results: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)


class InsufficientDataResponse(BaseModel):
    """400 body when a company has fewer than two usable points."""
    status: Literal["insufficient_data"] = "insufficient_data"
    error_type: Literal["INSUFFICIENT_DATA_POINTS"] = "INSUFFICIENT_DATA_POINTS"
    message: str
    company: str
    days: int
    data_points_found: int
    minimum_required: int = 2
