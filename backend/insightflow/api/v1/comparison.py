"""
Multi-company comparison endpoints.

Compares 2 to 5 companies drawn from the user's stored analyses and/or
fresh analyses, renders the radar, bar and scatter charts, and manages
saved comparison results.
"""

import asyncio
import logging
import math
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, File, Form, HTTPException, Query, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from insightflow.api.dependencies import (
    CompanyAnalysisServiceDep,
    ComparisonServiceDep,
    CurrentUser,
    DatabaseSession,
    VisualizationServiceDep,
)
from insightflow.models.analysis import AnalysisStatus
from insightflow.models.user import User
from insightflow.repositories.analysis import AnalysisRepository
from insightflow.repositories.comparison import ComparisonRepository
from insightflow.schemas.comparison import (
    MAX_COMPARISON_ITEMS,
    MIN_COMPARISON_ITEMS,
    CompareExistingRequest,
    ComparisonSummary,
    SaveComparisonRequest,
    SaveComparisonResponse,
    SavedComparisonsPage,
)
from insightflow.services.comparison_service import ComparisonService, metrics_by_company
from insightflow.services.llm_client import LLMServiceError
from insightflow.services.visualization import VisualizationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/comparison")


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def _without_images(analysis: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in analysis.items() if not key.endswith("_image")}


async def _load_completed_analyses(
    db: AsyncSession,
    user: User,
    analysis_ids: List[str],
) -> List[Dict[str, Any]]:
    """
    Fetch stored analyses for comparison.

    Raises:
        HTTPException 400: Missing, foreign or unfinished analysis
    """
    repository = AnalysisRepository(db)
    analyses: List[Dict[str, Any]] = []
    for analysis_id in analysis_ids:
        analysis = await repository.get(analysis_id)
        if analysis is None:
            raise _bad_request(f"Analysis not found: {analysis_id}")
        if analysis.user_id != user.id:
            raise _bad_request(f"Unauthorized access to analysis: {analysis_id}")
        if not analysis.is_completed:
            raise _bad_request(f"Analysis not completed: {analysis_id}")

        data = analysis.to_response()
        data["analysis_id"] = analysis.id
        data["source"] = "existing"
        analyses.append(data)
    return analyses


async def _render_charts(
    visualization_service: VisualizationService,
    comparison: Dict[str, Any],
) -> Dict[str, Optional[str]]:
    metrics = metrics_by_company(comparison)
    charts: Dict[str, Optional[str]] = {}
    for key, render in (
        ("radar_chart", visualization_service.generate_radar_chart),
        ("bar_graph", visualization_service.generate_bar_graph),
        ("scatter_plot", visualization_service.generate_scatter_plot),
    ):
        try:
            charts[key] = await asyncio.to_thread(render, metrics)
        except Exception as e:
            logger.error(f"Failed to render {key}", extra={"error": str(e)}, exc_info=True)
            charts[key] = None
    return charts


async def _build_comparison(
    analyses: List[Dict[str, Any]],
    comparison_service: ComparisonService,
    visualization_service: VisualizationService,
    user: User,
    comparison_type: str,
    saved_analysis_ids: List[str],
) -> Dict[str, Any]:
    comparison = await comparison_service.compute_comparison(analyses)
    charts = await _render_charts(visualization_service, comparison)
    result: Dict[str, Any] = {
        "analyses": analyses,
        "company_names": comparison["company_names"],
        "metrics": comparison["metrics"],
        "benchmarks": comparison["benchmarks"],
        "insights": comparison["insights"],
        "investment_recommendations": comparison["investment_recommendations"],
        **charts,
        "requested_by": user.username,
        "comparison_type": comparison_type,
        "saved_analysis_ids": saved_analysis_ids,
    }
    return result


async def _save_if_requested(db: AsyncSession, user: User, result: Dict[str, Any], save: bool) -> None:
    result["saved"] = False
    if not save:
        result["savedId"] = None
        return

    row = await ComparisonRepository(db).create(
        requested_by=user.id,
        comparison=result,
        comparison_type=result["comparison_type"],
        saved_analysis_ids=result["saved_analysis_ids"],
        analyses=[_without_images(a) for a in result["analyses"]],
    )
    result["saved"] = True
    result["savedId"] = row.id
    logger.info("Comparison saved", extra={"user_id": user.id, "comparison_id": row.id})


@router.get("/analyses")
async def list_comparable_analyses(current_user: CurrentUser, db: DatabaseSession) -> Dict[str, Any]:
    """The user's COMPLETED analyses, without chart images."""
    rows = await AnalysisRepository(db).list_for_user(current_user.id, AnalysisStatus.COMPLETED)
    return {"analyses": [row.to_response(include_images=False) for row in rows], "total": len(rows)}


@router.get("/analyses/{analysis_id}")
async def get_analysis(analysis_id: str, current_user: CurrentUser, db: DatabaseSession) -> Dict[str, Any]:
    analysis = await AnalysisRepository(db).get(analysis_id)
    if analysis is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Analysis not found")
    if analysis.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return analysis.to_response()


@router.post("/compare-existing")
async def compare_existing(
    body: CompareExistingRequest,
    current_user: CurrentUser,
    db: DatabaseSession,
    comparison_service: ComparisonServiceDep,
    visualization_service: VisualizationServiceDep,
) -> Dict[str, Any]:
    """
    Compare stored analyses.

    Example:
        POST /api/comparison/compare-existing
        {"analysisIds": ["a1", "a2"], "saveResult": true}

    Raises:
        HTTPException 400: Bad id count, or an id that is missing, owned by
            another user or not COMPLETED
    """
    analyses = await _load_completed_analyses(db, current_user, body.analysis_ids)

    result = await _build_comparison(
        analyses,
        comparison_service,
        visualization_service,
        current_user,
        comparison_type="existing",
        saved_analysis_ids=list(body.analysis_ids),
    )
    await _save_if_requested(db, current_user, result, body.save_result)
    return result


@router.post("/compare")
async def compare_companies(
    request: Request,
    current_user: CurrentUser,
    db: DatabaseSession,
    comparison_service: ComparisonServiceDep,
    visualization_service: VisualizationServiceDep,
    company_analysis: CompanyAnalysisServiceDep,
    company_names: List[str] = Form(default=[]),
    analysis_ids: List[str] = Form(default=[]),
    save_new_analyses: bool = Form(default=False),
    save_result: bool = Form(default=False),
    files: Optional[List[UploadFile]] = File(default=None),
) -> Dict[str, Any]:
    """
    Compare a mix of new companies and stored analyses.

    ``files`` are matched to ``company_names`` by position. New analyses
    are stored only when ``save_new_analyses`` is set.

    Raises:
        HTTPException 400: Fewer than 2 or more than 5 items, or a bad
            analysis id
        HTTPException 503: Language model unavailable
    """
    company_names = [name.strip() for name in company_names if name and name.strip()]
    analysis_ids = [i for i in analysis_ids if i]

    total = len(company_names) + len(analysis_ids)
    if not MIN_COMPARISON_ITEMS <= total <= MAX_COMPARISON_ITEMS:
        raise _bad_request("Provide 2 to 5 companies/analyses to compare")

    analyses = await _load_completed_analyses(db, current_user, analysis_ids)

    uploads = list(files or [])
    correlation_id = getattr(request.state, "request_id", None)
    saved_analysis_ids: List[str] = []

    for index, company_name in enumerate(company_names):
        file_name, file_bytes = None, None
        if index < len(uploads) and uploads[index].filename:
            file_name = uploads[index].filename
            file_bytes = await uploads[index].read()

        try:
            analysis = await company_analysis.analyze(
                db,
                company_name,
                current_user.id,
                file_name=file_name,
                file_bytes=file_bytes or None,
                persist=save_new_analyses,
                correlation_id=correlation_id,
            )
        except LLMServiceError as e:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

        analysis["source"] = "new"
        if analysis.get("analysis_id"):
            saved_analysis_ids.append(analysis["analysis_id"])
        analyses.append(analysis)

    result = await _build_comparison(
        analyses,
        comparison_service,
        visualization_service,
        current_user,
        comparison_type="mixed",
        saved_analysis_ids=saved_analysis_ids,
    )
    await _save_if_requested(db, current_user, result, save_result)
    return result


@router.post("/save", response_model=SaveComparisonResponse)
async def save_comparison(
    body: SaveComparisonRequest,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> SaveComparisonResponse:
    """Persist a comparison returned earlier by one of the compare endpoints."""
    payload = body.model_dump()
    row = await ComparisonRepository(db).create(
        requested_by=current_user.id,
        comparison=payload,
        comparison_type=body.comparison_type,
        saved_analysis_ids=body.saved_analysis_ids,
        analyses=[_without_images(a) for a in body.analyses],
    )
    logger.info("Comparison saved", extra={"user_id": current_user.id, "comparison_id": row.id})
    return SaveComparisonResponse(
        id=row.id,
        message="Comparison result saved successfully",
        comparison_date=row.comparison_date,
    )


@router.get("/saved", response_model=SavedComparisonsPage)
async def list_saved_comparisons(
    current_user: CurrentUser,
    db: DatabaseSession,
    type: Optional[str] = Query(default=None, description="existing or mixed"),
    page: int = Query(default=0, ge=0),
    size: int = Query(default=10, ge=1, le=100),
) -> SavedComparisonsPage:
    rows, total = await ComparisonRepository(db).list_for_user(current_user.id, type, page, size)
    total_pages = math.ceil(total / size) if total else 0
    return SavedComparisonsPage(
        content=[
            ComparisonSummary(
                id=row.id,
                comparison_date=row.comparison_date,
                comparison_type=row.comparison_type,
                number_of_companies=len(row.company_names()),
                company_names=row.company_names(),
            )
            for row in rows
        ],
        total_elements=total,
        total_pages=total_pages,
        current_page=page,
        page_size=size,
        has_next=page + 1 < total_pages,
        has_previous=page > 0,
    )


async def _owned_comparison(db: AsyncSession, comparison_id: str, user: User):
    row = await ComparisonRepository(db).get(comparison_id)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comparison result not found")
    if row.requested_by != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return row


@router.get("/saved/{comparison_id}")
async def get_saved_comparison(comparison_id: str, current_user: CurrentUser, db: DatabaseSession) -> Dict[str, Any]:
    row = await _owned_comparison(db, comparison_id, current_user)
    return row.to_response()


@router.delete("/saved/{comparison_id}")
async def delete_saved_comparison(
    comparison_id: str,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> Dict[str, str]:
    row = await _owned_comparison(db, comparison_id, current_user)
    await ComparisonRepository(db).delete(row.id)
    logger.info("Comparison deleted", extra={"user_id": current_user.id, "comparison_id": comparison_id})
    return {"message": "Comparison result deleted successfully"}
