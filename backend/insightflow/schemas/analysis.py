"""
Pydantic schemas and payload helpers for company analyses, RAG and LinkedIn.
"""

import re
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError


def camel_to_snake(name: str) -> str:
    """
    Example:
        >>> camel_to_snake("swotLists")
        'swot_lists'
    """
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


# Nested keys that are themselves camelCase in dashboard payloads
_NESTED_KEY_FIELDS = ("porter_forces", "swot_lists", "pestel_lists", "mckinsey_7s")

_MCKINSEY_ALIASES = {"mckinsey7s": "mckinsey_7s", "mckinsey7S": "mckinsey_7s", "mckinsey_7_s": "mckinsey_7s"}


def normalize_analysis_payload(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Convert an analysis payload to snake_case keys.

    Top-level keys and the keys of the framework dicts are converted. When
    both spellings are present the snake_case value wins. BCG product names
    are left untouched.
    """
    normalized: Dict[str, Any] = {}
    for key, value in payload.items():
        snake = _MCKINSEY_ALIASES.get(key) or camel_to_snake(key)
        if snake in normalized and snake != key:
            continue
        normalized[snake] = value

    for field in _NESTED_KEY_FIELDS:
        nested = normalized.get(field)
        if isinstance(nested, Mapping):
            normalized[field] = {camel_to_snake(k): v for k, v in nested.items()}

    return normalized


class AnalysisPayload(BaseModel):
    """
    Analysis document sent by a client, after ``normalize_analysis_payload``.

    Framework fields carry the same shapes the analysis pipeline produces.
    Unknown keys are dropped.
    """
    model_config = ConfigDict(extra="ignore")

    analysis_id: Optional[str] = None
    company_name: Optional[str] = None
    summaries: List[str] = Field(default_factory=list)
    sources: List[str] = Field(default_factory=list)
    strategy_recommendations: Optional[str] = None
    swot_lists: Optional[Dict[str, List[str]]] = None
    swot_image: Optional[str] = None
    pestel_lists: Optional[Dict[str, List[str]]] = None
    pestel_image: Optional[str] = None
    porter_forces: Optional[Dict[str, List[str]]] = None
    porter_image: Optional[str] = None
    bcg_matrix: Optional[Dict[str, Dict[str, Optional[float]]]] = None
    bcg_image: Optional[str] = None
    mckinsey_7s: Optional[Dict[str, str]] = None
    mckinsey_image: Optional[str] = None
    linkedin_analysis: Optional[str] = None
    uploaded_file_name: Optional[str] = None


class InvalidAnalysisPayload(ValueError):
    """Raised by ``parse_analysis_payload``; the message lists each bad field."""


def parse_analysis_payload(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Normalise and validate a client analysis payload.

    Returns:
        snake_case dict holding only the keys the client sent

    Raises:
        InvalidAnalysisPayload: If a field has the wrong shape
    """
    try:
        parsed = AnalysisPayload.model_validate(normalize_analysis_payload(payload))
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
        )
        raise InvalidAnalysisPayload(f"Invalid analysis payload: {problems}") from e
    return parsed.model_dump(exclude_unset=True)


class AnalysisResponse(BaseModel):
    """Full company analysis as returned by ``POST /api/analyze``."""
    model_config = ConfigDict(extra="allow")

    company_name: str
    summaries: List[str] = Field(default_factory=list)
    sources: List[str] = Field(default_factory=list)
    strategy_recommendations: Optional[str] = None
    swot_lists: Optional[Dict[str, List[str]]] = None
    swot_image: Optional[str] = None
    pestel_lists: Optional[Dict[str, List[str]]] = None
    pestel_image: Optional[str] = None
    porter_forces: Optional[Dict[str, List[str]]] = None
    porter_image: Optional[str] = None
    bcg_matrix: Optional[Dict[str, Dict[str, float]]] = None
    bcg_image: Optional[str] = None
    mckinsey_7s: Optional[Dict[str, str]] = None
    mckinsey_image: Optional[str] = None
    linkedin_analysis: Optional[str] = None
    requested_by: Optional[str] = None
    analysis_id: Optional[str] = None


class AnalysisListResponse(BaseModel):
    analyses: List[Dict[str, Any]]
    total: int


class SaveAnalysisResponse(BaseModel):
    id: str
    message: str


class RagAnalyzeRequest(BaseModel):
    """
    Attributes:
        company_name: Competitor to research
        context: Optional text describing our own company
    """
    model_config = ConfigDict(populate_by_name=True)

    company_name: str = Field(alias="companyName", min_length=1, description="Competitor name")
    context: Optional[str] = Field(default=None, description="Inline context document")


class RagAnalyzeResponse(BaseModel):
    company_name: str
    summaries: List[str]
    strategy_recommendations: str
    links: List[str]


class RagQueryRequest(BaseModel):
    query: str = Field(description="Question to answer")
    context: str = Field(description="Text to answer from")


class RagQueryResponse(BaseModel):
    answer: str


class LinkedInSlugRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    company_name: str = Field(alias="companyName", min_length=1, description="Company name")


class LinkedInSlugResponse(BaseModel):
    company_name: str
    linkedin_slug: str
    linkedin_url: str
    duration_ms: float
    success: bool
