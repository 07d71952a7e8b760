"""
Competitor research with retrieval-augmented generation.

Competitor context comes from web search plus page scraping. The
requesting company's own context comes from an uploaded document, which is
chunked, embedded and searched by cosine similarity.
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from insightflow.prompts import DIFF_WITH_RAG_TEMPLATE, RAG_QUERY_TEMPLATE
from insightflow.services.analysis_service import AnalysisService
from insightflow.services.interfaces.llm_client import ILLMClient
from insightflow.services.llm_client import LLMServiceError
from insightflow.services.scraping import ScrapingService
from insightflow.services.search_client import TavilyClient

logger = logging.getLogger(__name__)


CHUNK_SIZE = 800
CHUNK_OVERLAP = 100
TOP_K = 3
SEARCH_RESULTS = 3


def chunk_text(text: str, chunk_size: int = CHUNK_SIZE, overlap: int = CHUNK_OVERLAP) -> List[str]:
    """
    Split text into overlapping character windows.

    Consecutive chunks share ``overlap`` characters. Whitespace-only chunks
    are dropped.
    """
    if overlap >= chunk_size:
        raise ValueError("overlap must be smaller than chunk_size")

    text = text.strip()
    if not text:
        return []

    step = chunk_size - overlap
    chunks = []
    for start in range(0, len(text), step):
        chunk = text[start:start + chunk_size].strip()
        if chunk:
            chunks.append(chunk)
        if start + chunk_size >= len(text):
            break
    return chunks


def top_k_similar(query_vector: List[float], vectors: List[List[float]], k: int = TOP_K) -> List[int]:
    """
    Indices of the ``k`` vectors most similar to the query (cosine).

    Zero vectors score 0. Ties keep input order.
    """
    if not vectors:
        return []

    matrix = np.asarray(vectors, dtype=float)
    query = np.asarray(query_vector, dtype=float)

    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    scores = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)

    order = np.argsort(-scores, kind='stable')
    return [int(i) for i in order[:k]]


class RagService:
    """
    Competitor analysis and document question answering.

    Attributes:
        llm_client: Model client (generation and embeddings)
        analysis_service: Summary prompt helper
        search_client: Tavily client for competitor links
        scraper: Page text extractor
    """

    def __init__(
        self,
        llm_client: ILLMClient,
        analysis_service: AnalysisService,
        search_client: TavilyClient,
        scraper: ScrapingService,
    ):
        self.llm_client = llm_client
        self.analysis_service = analysis_service
        self.search_client = search_client
        self.scraper = scraper

    async def retrieve(self, query: str, document_text: str, k: int = TOP_K) -> List[str]:
        """Return the ``k`` chunks of ``document_text`` closest to ``query``."""
        chunks = chunk_text(document_text)
        if not chunks:
            return []

        vectors = await self.llm_client.embed(chunks + [query])
        chunk_vectors, query_vector = vectors[:-1], vectors[-1]
        return [chunks[i] for i in top_k_similar(query_vector, chunk_vectors, k)]

    async def analyze_competitor(
        self,
        company_name: str,
        document_text: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Research a competitor and propose differentiation axes.

        Args:
            company_name: Competitor to research
            document_text: Text describing our own company (optional)
            correlation_id: Optional request ID for tracing

        Returns:
            Dict with company_name, summaries, strategy_recommendations, links

        Raises:
            LLMServiceError: If the model fails while summarizing or
                generating recommendations
        """
        results = await self.search_client.search(company_name, max_results=SEARCH_RESULTS)
        links = [result["url"] for result in results]

        summaries: List[str] = []
        for url in links:
            content = await self.scraper.extract_text_from_url(url)
            if not content:
                logger.info(
                    "Skipping unreadable source",
                    extra={"company_name": company_name, "url": url}
                )
                continue
            summaries.append(
                await self.analysis_service.summarize(company_name, content, correlation_id=correlation_id)
            )

        competitor_summary = "\n\n".join(summaries)

        if document_text and document_text.strip():
            relevant = await self.retrieve(
                f"{company_name} competitive differentiation strategy", document_text
            )
            strategy_recommendations = await self.llm_client.generate_from_template(
                DIFF_WITH_RAG_TEMPLATE,
                {
                    "rag_context": "\n\n".join(relevant),
                    "competitor_name": company_name,
                    "competitor_summary": competitor_summary or "No external information found.",
                },
                correlation_id=correlation_id,
            )
        else:
            strategy_recommendations = competitor_summary

        logger.info(
            "Competitor analysis completed",
            extra={
                "company_name": company_name,
                "correlation_id": correlation_id,
                "link_count": len(links),
                "summary_count": len(summaries),
                "used_document": bool(document_text),
            }
        )

        return {
            "company_name": company_name,
            "summaries": summaries,
            "strategy_recommendations": strategy_recommendations,
            "links": links,
        }

    async def answer_query(self, query: str, context_text: str) -> str:
        """
        Answer a question from the supplied text.

        Raises:
            ValueError: If the query or context is empty
            LLMServiceError: If the model is unavailable
        """
        if not query or not query.strip():
            raise ValueError("query is required")
        if not context_text or not context_text.strip():
            raise ValueError("context is required")

        try:
            relevant = await self.retrieve(query, context_text)
        except LLMServiceError:
            # Embeddings unavailable: answer from the leading chunks instead
            logger.warning("Embedding failed, using leading chunks as context")
            relevant = chunk_text(context_text)[:TOP_K]

        return await self.llm_client.generate_from_template(
            RAG_QUERY_TEMPLATE,
            {"rag_context": "\n\n".join(relevant), "query": query},
        )
