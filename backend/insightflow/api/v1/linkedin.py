"""
LinkedIn slug lookup endpoint.
"""

import logging
import time

from fastapi import APIRouter, HTTPException, status

from insightflow.api.dependencies import CurrentUser, LinkedInServiceDep
from insightflow.schemas.analysis import LinkedInSlugRequest, LinkedInSlugResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/linkedin")


@router.post("/generate-slug", response_model=LinkedInSlugResponse)
async def generate_slug(
    body: LinkedInSlugRequest,
    current_user: CurrentUser,
    linkedin_service: LinkedInServiceDep,
) -> LinkedInSlugResponse:
    """
    Resolve the LinkedIn company slug for a name.

    Example:
        POST /api/linkedin/generate-slug
        {"companyName": "Tesla"}

        Response:
        {"company_name": "Tesla", "linkedin_slug": "tesla-motors",
         "linkedin_url": "https://www.linkedin.com/company/tesla-motors/",
         "duration_ms": 3.1, "success": true}
    """
    company_name = body.company_name.strip()
    if not company_name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="companyName is required")

    start = time.perf_counter()
    described = await linkedin_service.describe_slug(company_name)
    duration_ms = round((time.perf_counter() - start) * 1000, 2)

    logger.info(
        "LinkedIn slug resolved",
        extra={"company_name": company_name, "slug": described["linkedin_slug"], "duration_ms": duration_ms}
    )
    return LinkedInSlugResponse(**described, duration_ms=duration_ms, success=bool(described["linkedin_slug"]))
