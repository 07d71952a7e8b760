"""
Company analysis endpoints.

- POST /api/analyze: full analysis of one company (multipart, optional document)
- POST /api/generate-company-file: downloadable text report
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, File, Form, HTTPException, Request, UploadFile, status
from fastapi.responses import PlainTextResponse

from insightflow.api.dependencies import CompanyAnalysisServiceDep, CurrentUser, DatabaseSession
from insightflow.repositories.analysis import AnalysisRepository
from insightflow.schemas.analysis import AnalysisResponse, InvalidAnalysisPayload, parse_analysis_payload
from insightflow.services.llm_client import LLMServiceError
from insightflow.services.report_builder import build_company_report, report_filename

logger = logging.getLogger(__name__)

router = APIRouter()


# Keys that mark a payload as an already computed analysis
_ARTIFACT_KEYS = ("summaries", "swot_lists", "pestel_lists", "porter_forces", "bcg_matrix", "mckinsey_7s")


@router.post("/analyze", response_model=AnalysisResponse)
async def analyze_company(
    request: Request,
    current_user: CurrentUser,
    db: DatabaseSession,
    company_analysis: CompanyAnalysisServiceDep,
    company_name: Optional[str] = Form(default=None),
    file: Optional[UploadFile] = File(default=None),
    save: bool = Form(default=True),
) -> Dict[str, Any]:
    """
    Run a full competitive analysis.

    The optional ``file`` (PDF or text) describes the caller's own company
    and is used for differentiation recommendations.

    Raises:
        HTTPException 400: Missing company name
        HTTPException 503: Language model unavailable
        HTTPException 500: Any other failure
    """
    if not company_name or not company_name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="company_name is required")
    company_name = company_name.strip()

    file_name, file_bytes = None, None
    if file is not None and file.filename:
        file_name = file.filename
        file_bytes = await file.read()

    correlation_id = getattr(request.state, "request_id", None)
    logger.info(
        "Analysis requested",
        extra={"company_name": company_name, "user_id": current_user.id, "correlation_id": correlation_id}
    )

    try:
        return await company_analysis.analyze(
            db,
            company_name,
            current_user.id,
            file_name=file_name,
            file_bytes=file_bytes,
            persist=save,
            correlation_id=correlation_id,
        )
    except LLMServiceError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except Exception as e:
        logger.error(f"Analysis failed: {e}", extra={"company_name": company_name}, exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Analysis failed: {e}")


@router.post("/generate-company-file", response_class=PlainTextResponse)
async def generate_company_file(
    request: Request,
    current_user: CurrentUser,
    db: DatabaseSession,
    company_analysis: CompanyAnalysisServiceDep,
    payload: Dict[str, Any] = Body(...),
) -> PlainTextResponse:
    """
    Render an analysis as a text file download.

    The body is either a stored analysis reference ``{"analysis_id": ...}``,
    a full analysis payload, or just ``{"company_name": ...}`` in which case
    a fresh (unsaved) analysis is run first.

    Raises:
        HTTPException 400: Malformed payload or missing company name
        HTTPException 403/404: Stored analysis belongs to someone else or is missing
    """
    try:
        data = parse_analysis_payload(payload)
    except InvalidAnalysisPayload as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if data.get("analysis_id"):
        analysis = await AnalysisRepository(db).get(data["analysis_id"])
        if analysis is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Analysis not found")
        if analysis.user_id != current_user.id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
        data = analysis.to_response(include_images=False)
    elif not any(data.get(key) for key in _ARTIFACT_KEYS):
        company_name = (data.get("company_name") or "").strip()
        if not company_name:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="company_name is required")
        try:
            data = await company_analysis.run(
                company_name, correlation_id=getattr(request.state, "request_id", None)
            )
        except LLMServiceError as e:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    report = build_company_report(data)
    filename = report_filename(data.get("company_name") or "company")
    return PlainTextResponse(
        content=report,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
