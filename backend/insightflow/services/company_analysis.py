"""
Company analysis orchestration.

Runs one full analysis for a company: competitor research, the five
strategic frameworks with their charts, and LinkedIn intelligence. Results
are stored as a UserAnalysis that moves from PENDING to COMPLETED, or to
FAILED with the error message.
"""

import asyncio
import logging
import time
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from insightflow.core.logging_config import log_with_context
from insightflow.models.analysis import AnalysisStatus
from insightflow.repositories.analysis import AnalysisRepository
from insightflow.repositories.user import UserRepository
from insightflow.services.analysis_service import AnalysisService
from insightflow.services.document_loader import load_document_text
from insightflow.services.linkedin_service import LinkedInService
from insightflow.services.rag_service import RagService
from insightflow.services.visualization import VisualizationService

logger = logging.getLogger(__name__)


GENERIC_SOURCES = (
    "Company official website and about page",
    "Professional business networks and company profiles",
    "Industry databases and business information platforms",
    "Financial reports and investor relations materials",
    "Market research and industry analysis reports",
)
MIN_SOURCES = 2
MAX_SOURCES = 8


def build_sources(links: List[str]) -> List[str]:
    """
    Source list shown with an analysis.

    Found links come first. With fewer than two, the generic source
    descriptions are appended. Duplicates are removed and the list is
    capped at eight entries.
    """
    sources = [link for link in links if link]
    if len(sources) < MIN_SOURCES:
        sources.extend(GENERIC_SOURCES)

    unique: List[str] = []
    for source in sources:
        if source not in unique:
            unique.append(source)
    return unique[:MAX_SOURCES]


class CompanyAnalysisService:
    """
    Runs and persists complete company analyses.

    Attributes:
        analysis_service: Framework generation
        rag_service: Competitor research
        linkedin_service: LinkedIn intelligence
        visualization_service: Framework charts
    """

    def __init__(
        self,
        analysis_service: AnalysisService,
        rag_service: RagService,
        linkedin_service: LinkedInService,
        visualization_service: VisualizationService,
    ):
        self.analysis_service = analysis_service
        self.rag_service = rag_service
        self.linkedin_service = linkedin_service
        self.visualization_service = visualization_service

    async def run(
        self,
        company_name: str,
        document_text: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Produce every analysis artifact without touching the database.

        Raises:
            LLMServiceError: If competitor research cannot reach the model
        """
        log_extra = {"company_name": company_name, "correlation_id": correlation_id}
        logger.info("Starting company analysis", extra=log_extra)
        start = time.perf_counter()

        rag = await self.rag_service.analyze_competitor(
            company_name, document_text=document_text, correlation_id=correlation_id
        )

        frameworks = {
            "swot_lists": await self.analysis_service.generate_swot(company_name, correlation_id),
            "pestel_lists": await self.analysis_service.generate_pestel(company_name, correlation_id),
            "porter_forces": await self.analysis_service.generate_porter(company_name, correlation_id),
            "bcg_matrix": await self.analysis_service.generate_bcg(company_name, correlation_id),
            "mckinsey_7s": await self.analysis_service.generate_mckinsey(company_name, correlation_id),
        }

        # matplotlib rendering is CPU bound
        images = await asyncio.to_thread(
            self.visualization_service.generate_framework_charts, frameworks, company_name
        )

        linkedin_analysis = await self.linkedin_service.analyze(company_name, correlation_id=correlation_id)

        result: Dict[str, Any] = {
            "company_name": company_name,
            "summaries": rag["summaries"],
            "sources": build_sources(rag["links"]),
            "strategy_recommendations": rag["strategy_recommendations"],
            **frameworks,
            "swot_image": images.get("swot_image"),
            "pestel_image": images.get("pestel_image"),
            "porter_image": images.get("porter_image"),
            "bcg_image": images.get("bcg_image"),
            "mckinsey_image": images.get("mckinsey_image"),
            "linkedin_analysis": linkedin_analysis,
        }

        log_with_context(
            logger,
            "info",
            "Company analysis completed",
            company_name=company_name,
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
            correlation_id=correlation_id,
            source_count=len(result["sources"]),
        )
        return result

    async def analyze(
        self,
        session: Optional[AsyncSession],
        company_name: str,
        user_id: Optional[str],
        file_name: Optional[str] = None,
        file_bytes: Optional[bytes] = None,
        persist: bool = True,
        correlation_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Run an analysis on behalf of a user and store it.

        Args:
            session: Database session (unused when ``persist`` is False)
            company_name: Company to analyse
            user_id: Requesting user id
            file_name: Uploaded document name
            file_bytes: Uploaded document contents
            persist: Store the analysis and append it to the user's history
            correlation_id: Optional request ID for tracing

        Returns:
            Analysis result with ``requested_by`` and ``analysis_id``

        Raises:
            Whatever the analysis raised; the stored row is marked FAILED
            and committed first
        """
        correlation_id = correlation_id or str(uuid.uuid4())
        document_text = load_document_text(file_name, file_bytes) if file_bytes else None

        if not persist or session is None or user_id is None:
            result = await self.run(company_name, document_text, correlation_id)
            result["requested_by"] = user_id
            result["analysis_id"] = None
            return result

        analyses = AnalysisRepository(session)
        analysis = await analyses.create(
            user_id=user_id,
            company_name=company_name,
            status=AnalysisStatus.PENDING,
            uploaded_file_name=file_name,
        )

        try:
            result = await self.run(company_name, document_text, correlation_id)
        except Exception as e:
            analysis.mark_failed(str(e))
            await analyses.save(analysis)
            await session.commit()
            logger.error(
                "Company analysis failed",
                extra={
                    "company_name": company_name,
                    "analysis_id": analysis.id,
                    "correlation_id": correlation_id,
                    "error": str(e),
                }
            )
            raise

        analysis.apply_result(result)
        analysis.status = AnalysisStatus.COMPLETED
        await analyses.save(analysis)
        await UserRepository(session).add_analysis_to_history(user_id, analysis.id)

        result["requested_by"] = user_id
        result["analysis_id"] = analysis.id
        return result
