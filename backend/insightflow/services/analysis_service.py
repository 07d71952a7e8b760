"""
Strategic framework generation.

Each ``generate_*`` method fills its prompt template with the company name,
asks the model, and coerces the reply into the framework's fixed key set.
Model failures never propagate from these methods: the framework's canned
fallback is returned instead.
"""

import logging
from typing import Any, Dict, List, Optional

from insightflow.prompts import (
    BCG_TEMPLATE,
    LINKEDIN_ANALYSIS_TEMPLATE,
    MCKINSEY_TEMPLATE,
    PESTEL_TEMPLATE,
    PORTER_TEMPLATE,
    SUMMARY_TEMPLATE,
    SWOT_TEMPLATE,
)
from insightflow.services.interfaces.llm_client import ILLMClient
from insightflow.services.llm_client import LLMServiceError
from insightflow.services.response_parser import get_fallback, parse_json_response

logger = logging.getLogger(__name__)


_FRAMEWORK_TEMPLATES = {
    "swot": SWOT_TEMPLATE,
    "pestel": PESTEL_TEMPLATE,
    "porter": PORTER_TEMPLATE,
    "bcg": BCG_TEMPLATE,
    "mckinsey": MCKINSEY_TEMPLATE,
}


class AnalysisService:
    """
    Generates SWOT, PESTEL, Porter, BCG and McKinsey 7S frameworks.

    Attributes:
        llm_client: Model client used for every prompt
    """

    def __init__(self, llm_client: ILLMClient):
        self.llm_client = llm_client

    async def _generate_framework(
        self,
        analysis_type: str,
        company_name: str,
        correlation_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        try:
            reply = await self.llm_client.generate_from_template(
                _FRAMEWORK_TEMPLATES[analysis_type],
                {"company_name": company_name},
                correlation_id=correlation_id,
            )
        except LLMServiceError as e:
            logger.warning(
                "Framework generation failed, using fallback",
                extra={
                    "analysis_type": analysis_type,
                    "company_name": company_name,
                    "error": str(e),
                }
            )
            return get_fallback(analysis_type)

        return parse_json_response(reply, analysis_type)

    async def generate_swot(self, company_name: str, correlation_id: Optional[str] = None) -> Dict[str, List[str]]:
        return await self._generate_framework("swot", company_name, correlation_id)

    async def generate_pestel(self, company_name: str, correlation_id: Optional[str] = None) -> Dict[str, List[str]]:
        return await self._generate_framework("pestel", company_name, correlation_id)

    async def generate_porter(self, company_name: str, correlation_id: Optional[str] = None) -> Dict[str, List[str]]:
        return await self._generate_framework("porter", company_name, correlation_id)

    async def generate_bcg(
        self, company_name: str, correlation_id: Optional[str] = None
    ) -> Dict[str, Dict[str, float]]:
        return await self._generate_framework("bcg", company_name, correlation_id)

    async def generate_mckinsey(self, company_name: str, correlation_id: Optional[str] = None) -> Dict[str, str]:
        return await self._generate_framework("mckinsey", company_name, correlation_id)

    async def summarize(
        self,
        company_name: str,
        content: str,
        correlation_id: Optional[str] = None,
    ) -> str:
        """
        Summarize scraped content about a company.

        Raises:
            LLMServiceError: If the model is unavailable
        """
        return await self.llm_client.generate_from_template(
            SUMMARY_TEMPLATE,
            {"company_name": company_name, "content": content},
            correlation_id=correlation_id,
        )

    async def analyze_linkedin_content(
        self,
        company_name: str,
        content: str,
        correlation_id: Optional[str] = None,
    ) -> str:
        """
        Produce the four-section LinkedIn intelligence summary.

        Raises:
            LLMServiceError: If the model is unavailable
        """
        return await self.llm_client.generate_from_template(
            LINKEDIN_ANALYSIS_TEMPLATE,
            {"company_name": company_name, "content": content},
            correlation_id=correlation_id,
        )
