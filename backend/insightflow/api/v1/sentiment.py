"""
Sentiment monitoring endpoints.

Collection, monitoring list management, trend analysis and trend charts.
Trend endpoints answer 400 with an ``insufficient_data`` body when a
company has fewer than two usable data points.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, HTTPException, Query, status
from fastapi.responses import JSONResponse

from insightflow.api.dependencies import (
    CurrentUser,
    SentimentChartServiceDep,
    SentimentSchedulerDep,
    SentimentTrendServiceDep,
)
from insightflow.schemas.sentiment import (
    CollectionResponse,
    InsufficientDataResponse,
    SentimentStatusResponse,
    TestCollectionResponse,
)
from insightflow.services.sentiment_trends import MINIMUM_DATA_POINTS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sentiment")


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _insufficient(company: str, days: int, found: int, purpose: str) -> JSONResponse:
    body = InsufficientDataResponse(
        message=(
            f"Not enough data points available for {company}. "
            f"Need at least {MINIMUM_DATA_POINTS} data points to {purpose}."
        ),
        company=company,
        days=days,
        data_points_found=found,
        minimum_required=MINIMUM_DATA_POINTS,
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump())


@router.post("/collect", response_model=CollectionResponse)
async def collect_all(current_user: CurrentUser, scheduler: SentimentSchedulerDep) -> CollectionResponse:
    """Run a collection for every monitored company now."""
    saved = await scheduler.collect_daily_sentiment()
    return CollectionResponse(
        status="success",
        message="Sentiment collection triggered for all monitored companies",
        saved=saved,
    )


@router.post("/collect/{companies}", response_model=CollectionResponse)
async def collect_companies(
    companies: str,
    current_user: CurrentUser,
    scheduler: SentimentSchedulerDep,
) -> CollectionResponse:
    """
    Fetch and store sentiment for a comma-separated list of companies.

    Example:
        POST /api/sentiment/collect/Tesla,Ford
    """
    names = _split_csv(companies)
    if not names:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No companies given")

    saved = await scheduler.collect_for_companies(names)
    return CollectionResponse(
        status="success",
        message=f"Sentiment collection completed for companies: {', '.join(names)}",
        saved=saved,
    )


@router.get("/companies", response_model=SentimentStatusResponse)
async def list_companies(current_user: CurrentUser, scheduler: SentimentSchedulerDep) -> SentimentStatusResponse:
    return SentimentStatusResponse(status="success", companies=await scheduler.get_monitored_companies())


@router.post("/companies/add/{company}", response_model=SentimentStatusResponse)
async def add_company(
    company: str,
    current_user: CurrentUser,
    scheduler: SentimentSchedulerDep,
) -> SentimentStatusResponse:
    added = await scheduler.add_company(company, added_by=current_user.username)
    return SentimentStatusResponse(
        status="success" if added else "error",
        message="Company added to monitoring" if added else "Company already monitored or invalid",
        companies=await scheduler.get_monitored_companies(),
    )


@router.delete("/companies/remove/{company}", response_model=SentimentStatusResponse)
async def remove_company(
    company: str,
    current_user: CurrentUser,
    scheduler: SentimentSchedulerDep,
) -> SentimentStatusResponse:
    removed = await scheduler.remove_company(company)
    return SentimentStatusResponse(
        status="success" if removed else "error",
        message="Company removed from monitoring" if removed else "Company not found",
        companies=await scheduler.get_monitored_companies(),
    )


@router.post("/companies/skip/{company}", response_model=SentimentStatusResponse)
async def skip_company(
    company: str,
    current_user: CurrentUser,
    scheduler: SentimentSchedulerDep,
) -> SentimentStatusResponse:
    skipped = await scheduler.skip_company_next_run(company)
    return SentimentStatusResponse(
        status="success" if skipped else "error",
        message="Company will be skipped in next run" if skipped else "Company not found",
        companies=await scheduler.get_monitored_companies(),
    )


@router.post("/companies/replace", response_model=SentimentStatusResponse)
async def replace_companies(
    current_user: CurrentUser,
    scheduler: SentimentSchedulerDep,
    companies: List[str] = Body(...),
) -> SentimentStatusResponse:
    """Make the JSON list body the exact set of monitored companies."""
    active = await scheduler.replace_companies(companies, added_by=current_user.username)
    return SentimentStatusResponse(status="success", message="Monitoring list updated", companies=active)


@router.post("/test", response_model=TestCollectionResponse)
async def test_collection(
    current_user: CurrentUser,
    scheduler: SentimentSchedulerDep,
    companies: Optional[str] = Query(default=None, description="Comma-separated companies"),
    sources: Optional[str] = Query(default=None, description="Comma-separated sources (news, social)"),
) -> TestCollectionResponse:
    """Fetch and score without saving; defaults to all monitored companies."""
    company_list = _split_csv(companies)
    source_list = _split_csv(sources)
    results = await scheduler.test_with_companies(company_list or None, source_list or None)
    return TestCollectionResponse(
        status="success",
        message=(
            f"Test completed for companies: {', '.join(results)} "
            f"with sources: {', '.join(source_list) or 'news, social'}"
        ),
        results=results,
    )


@router.get("/comparison/chart")
async def comparison_chart(
    current_user: CurrentUser,
    trend_service: SentimentTrendServiceDep,
    chart_service: SentimentChartServiceDep,
    companies: str = Query(..., description="Comma-separated companies"),
    days: int = Query(default=30, ge=1),
    sources: Optional[str] = Query(default=None),
):
    """
    Multi-company sentiment line chart.

    Raises:
        HTTPException 500: Chart rendering produced nothing
    """
    names = _split_csv(companies)
    if not names:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No companies given")
    source_list = _split_csv(sources) or None

    companies_data: Dict[str, Dict[str, Any]] = {}
    insufficient: List[str] = []
    total_points = 0
    for name in names:
        analysis = await trend_service.analyze_trends(name, days, source_list)
        total_points += analysis["data_point_count"]
        if analysis["data_point_count"] < MINIMUM_DATA_POINTS:
            insufficient.append(name)
        else:
            companies_data[name] = analysis

    if insufficient:
        if len(insufficient) == len(names):
            message = (
                f"None of the companies have sufficient data. "
                f"Need at least {MINIMUM_DATA_POINTS} data points per company."
            )
        else:
            message = (
                f"Some companies have insufficient data: {', '.join(insufficient)}. "
                f"Need at least {MINIMUM_DATA_POINTS} data points per company."
            )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "status": "insufficient_data",
                "error_type": "INSUFFICIENT_DATA_POINTS",
                "message": message,
                "companies_requested": names,
                "companies_with_insufficient_data": insufficient,
                "days": days,
                "total_data_points_found": total_points,
                "minimum_required_per_company": MINIMUM_DATA_POINTS,
            },
        )

    chart = await asyncio.to_thread(chart_service.generate_comparison_chart, companies_data)
    if chart is None:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to generate chart")

    return {
        "status": "success",
        "companies": names,
        "days": days,
        "sources": source_list,
        "chart": chart,
        "chart_type": "base64",
        "companies_data": companies_data,
        "requested_by": current_user.username,
    }


@router.get("/{company}/trend")
async def company_trend(
    company: str,
    current_user: CurrentUser,
    trend_service: SentimentTrendServiceDep,
    days: int = Query(default=30, ge=1),
    sources: Optional[str] = Query(default=None),
):
    """Trend statistics and significant events for one company."""
    analysis = await trend_service.analyze_trends(company, days, _split_csv(sources) or None)
    if analysis["data_point_count"] < MINIMUM_DATA_POINTS:
        return _insufficient(company, days, analysis["data_point_count"], "analyze trends")

    return {**analysis, "requested_by": current_user.username}


@router.get("/{company}/trend/chart")
async def company_trend_chart(
    company: str,
    current_user: CurrentUser,
    trend_service: SentimentTrendServiceDep,
    chart_service: SentimentChartServiceDep,
    days: int = Query(default=30, ge=1),
    sources: Optional[str] = Query(default=None),
):
    source_list = _split_csv(sources) or None
    analysis = await trend_service.analyze_trends(company, days, source_list)
    if analysis["data_point_count"] < MINIMUM_DATA_POINTS:
        return _insufficient(company, days, analysis["data_point_count"], "generate a trend chart")

    chart = await asyncio.to_thread(chart_service.generate_trend_chart, analysis)
    if chart is None:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to generate chart")

    logger.info("Trend chart generated", extra={"company_name": company, "days": days})
    return {
        "status": "success",
        "company": company,
        "days": days,
        "sources": source_list,
        "chart": chart,
        "chart_type": "base64",
        "analysis": analysis,
        "requested_by": current_user.username,
    }
