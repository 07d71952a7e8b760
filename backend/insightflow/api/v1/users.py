"""
User profile and analysis history endpoints.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, HTTPException, status

from insightflow.api.dependencies import CurrentUser, DatabaseSession
from insightflow.models.analysis import AnalysisStatus
from insightflow.repositories.analysis import AnalysisRepository
from insightflow.repositories.user import UserRepository
from insightflow.schemas.analysis import (
    AnalysisListResponse,
    InvalidAnalysisPayload,
    SaveAnalysisResponse,
    parse_analysis_payload,
)
from insightflow.schemas.auth import UserProfileResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user")


@router.get("/profile", response_model=UserProfileResponse)
async def get_profile(current_user: CurrentUser, db: DatabaseSession) -> UserProfileResponse:
    analyses = AnalysisRepository(db)
    return UserProfileResponse(
        id=current_user.id,
        first_name=current_user.first_name,
        last_name=current_user.last_name,
        email=current_user.email,
        avatar=current_user.avatar,
        role=current_user.role,
        created_at=current_user.created_at,
        last_login=current_user.last_login,
        total_analyses=await analyses.count_for_user(current_user.id),
        successful_analyses=await analyses.count_for_user(current_user.id, AnalysisStatus.COMPLETED),
    )


@router.get("/analyses", response_model=AnalysisListResponse)
async def list_analyses(current_user: CurrentUser, db: DatabaseSession) -> AnalysisListResponse:
    """All of the user's analyses, newest first, with chart images."""
    rows = await AnalysisRepository(db).list_for_user(current_user.id)
    return AnalysisListResponse(analyses=[row.to_response() for row in rows], total=len(rows))


@router.post("/analyses", response_model=SaveAnalysisResponse)
async def save_analysis(
    current_user: CurrentUser,
    db: DatabaseSession,
    payload: Dict[str, Any] = Body(...),
) -> SaveAnalysisResponse:
    """
    Store an analysis produced earlier (for example by a non-persisted run).

    The payload may use snake_case or camelCase keys and is stored as
    COMPLETED.

    Raises:
        HTTPException 400: If the company name is missing or a framework
            field has the wrong shape
    """
    try:
        data = parse_analysis_payload(payload)
    except InvalidAnalysisPayload as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    company_name = (data.get("company_name") or "").strip()
    if not company_name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="company_name is required")

    analysis = await AnalysisRepository(db).create(
        user_id=current_user.id,
        company_name=company_name,
        status=AnalysisStatus.COMPLETED,
        result=data,
        uploaded_file_name=data.get("uploaded_file_name"),
    )
    await UserRepository(db).add_analysis_to_history(current_user.id, analysis.id)

    logger.info(
        "Analysis saved",
        extra={"user_id": current_user.id, "analysis_id": analysis.id, "company_name": company_name}
    )
    return SaveAnalysisResponse(id=analysis.id, message="Analysis saved successfully")
