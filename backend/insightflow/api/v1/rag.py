"""
Competitor research and document question answering.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Request, status

from insightflow.api.dependencies import CurrentUser, RagServiceDep
from insightflow.schemas.analysis import (
    RagAnalyzeRequest,
    RagAnalyzeResponse,
    RagQueryRequest,
    RagQueryResponse,
)
from insightflow.services.llm_client import LLMServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rag")


class RagAnalyzeResult(RagAnalyzeResponse):
    requested_by: str


@router.post("/analyze", response_model=RagAnalyzeResult)
async def analyze_competitor(
    request: Request,
    body: RagAnalyzeRequest,
    current_user: CurrentUser,
    rag_service: RagServiceDep,
) -> Dict[str, Any]:
    """
    Research a competitor and, when ``context`` is given, propose
    differentiation axes against it.

    Raises:
        HTTPException 400: Blank company name
        HTTPException 503: Language model unavailable
    """
    company_name = body.company_name.strip()
    if not company_name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="companyName is required")

    try:
        result = await rag_service.analyze_competitor(
            company_name,
            document_text=body.context,
            correlation_id=getattr(request.state, "request_id", None),
        )
    except LLMServiceError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    result["requested_by"] = current_user.username
    return result


@router.post("/query", response_model=RagQueryResponse)
async def query_document(
    body: RagQueryRequest,
    current_user: CurrentUser,
    rag_service: RagServiceDep,
) -> RagQueryResponse:
    try:
        answer = await rag_service.answer_query(body.query, body.context)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except LLMServiceError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    logger.info("Document query answered", extra={"user_id": current_user.id})
    return RagQueryResponse(answer=answer)
