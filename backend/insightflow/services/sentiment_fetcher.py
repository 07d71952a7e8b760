"""
Sentiment data fetching and scoring.

Pulls one text snippet per source (NewsAPI for "news", Google Custom
Search for "social"), scores it with the combined sentiment/risk prompt,
and turns it into unsaved SentimentData records.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from insightflow.core.config import settings
from insightflow.models.base import utc_now_iso
from insightflow.models.sentiment import SentimentData
from insightflow.prompts import COMBINED_TEMPLATE
from insightflow.services.interfaces.llm_client import ILLMClient
from insightflow.services.llm_client import LLMServiceError
from insightflow.services.response_parser import extract_json_object

logger = logging.getLogger(__name__)


DEFAULT_SOURCES = ("news", "social")
NUMBER_PATTERN = re.compile(r"\d+(?:\.\d+)?")
UNKNOWN_SOURCE = "unknown"


def parse_scores(reply: str) -> Tuple[float, float]:
    """
    Extract (sentiment_score, risk_rating) from a model reply.

    A JSON object with a positive sentiment and non-negative risk wins.
    Otherwise the first two positive numbers in the text are used, and
    (0, 0) when fewer than two are found.
    """
    parsed = extract_json_object(reply)
    if parsed and "sentiment_score" in parsed and "risk_rating" in parsed:
        try:
            sentiment = float(parsed["sentiment_score"])
            risk = float(parsed["risk_rating"])
        except (TypeError, ValueError):
            pass
        else:
            if sentiment > 0 and risk >= 0:
                return sentiment, risk

    numbers = [float(n) for n in NUMBER_PATTERN.findall(reply or "")]
    numbers = [n for n in numbers if n > 0]
    if len(numbers) >= 2:
        return numbers[0], numbers[1]

    logger.warning("Could not extract sentiment scores", extra={"reply": (reply or "")[:200]})
    return 0.0, 0.0


def build_metadata(text: str, source_url: Optional[str]) -> Dict[str, Any]:
    return {
        "text_length": len(text),
        "word_count": len(text.split()),
        "source_reachable": source_url is not None,
        "processing_timestamp": utc_now_iso(),
    }


class SentimentFetcherService:
    """
    Fetches and scores sentiment for a company.

    Attributes:
        llm_client: Model used for scoring
        http_client: Optional shared httpx client (created per call otherwise)
    """

    DEFAULT_TIMEOUT = 15.0

    def __init__(self, llm_client: ILLMClient, http_client: Optional[httpx.AsyncClient] = None):
        self.llm_client = llm_client
        self.http_client = http_client

    async def _get_json(self, url: str, params: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if self.http_client is not None:
            response = await self.http_client.get(url, params=params)
        else:
            async with httpx.AsyncClient(timeout=self.DEFAULT_TIMEOUT) as client:
                response = await client.get(url, params=params)
        response.raise_for_status()
        return response.json()

    async def fetch_news(self, company_name: str) -> Tuple[Optional[str], Optional[str]]:
        """Latest NewsAPI article as (title + description, url)."""
        if not settings.news_api_key:
            logger.warning("NewsAPI key not configured, skipping news source")
            return None, None

        body = await self._get_json(
            f"{settings.news_api_base_url.rstrip('/')}/everything",
            {
                "q": company_name,
                "apiKey": settings.news_api_key,
                "sortBy": "publishedAt",
                "pageSize": 5,
            },
        )
        articles = (body or {}).get("articles") or []
        if not articles:
            return None, None

        first = articles[0]
        text = f"{first.get('title') or ''}. {first.get('description') or ''}".strip()
        return text, first.get("url")

    async def fetch_social(self, company_name: str) -> Tuple[Optional[str], Optional[str]]:
        """First Google Custom Search hit for social sentiment as (snippet, link)."""
        if not settings.google_search_api_key or not settings.google_search_engine_id:
            logger.warning("Google Custom Search not configured, skipping social source")
            return None, None

        body = await self._get_json(
            settings.google_search_base_url,
            {
                "key": settings.google_search_api_key,
                "cx": settings.google_search_engine_id,
                "q": f"{company_name} social sentiment",
                "num": 5,
            },
        )
        items = (body or {}).get("items") or []
        if not items:
            return None, None

        first = items[0]
        return first.get("snippet"), first.get("link")

    async def fetch_text_and_url(self, company_name: str, source: str) -> Tuple[Optional[str], Optional[str]]:
        if source == "news":
            return await self.fetch_news(company_name)
        if source == "social":
            return await self.fetch_social(company_name)
        logger.warning("Unknown sentiment source", extra={"source": source})
        return None, None

    async def fetch_and_score(
        self,
        company_name: str,
        sources: Optional[Sequence[str]] = None,
    ) -> List[SentimentData]:
        """
        Fetch and score one data point per source.

        A failing source is logged and skipped. Points where neither score is
        positive are dropped.

        Returns:
            Unsaved SentimentData records
        """
        records: List[SentimentData] = []

        for source in sources or DEFAULT_SOURCES:
            try:
                text, source_url = await self.fetch_text_and_url(company_name, source)
            except (httpx.HTTPError, ValueError) as e:
                logger.error(
                    "Failed to fetch sentiment source",
                    extra={"company_name": company_name, "source": source, "error": str(e)}
                )
                continue

            if not text or not text.strip():
                continue

            try:
                reply = await self.llm_client.generate_from_template(
                    COMBINED_TEMPLATE, {"company_name": company_name, "information": text}
                )
            except LLMServiceError as e:
                logger.error(
                    "Failed to score sentiment",
                    extra={"company_name": company_name, "source": source, "error": str(e)}
                )
                continue

            sentiment, risk = parse_scores(reply)
            if sentiment <= 0 and risk <= 0:
                logger.info(
                    "Skipping unscored data point",
                    extra={"company_name": company_name, "source": source}
                )
                continue

            record = SentimentData(
                company_name=company_name,
                sentiment_score=sentiment,
                risk_rating=risk,
                source_type=source,
                source_identifier=source_url or UNKNOWN_SOURCE,
                timestamp=utc_now_iso(),
            )
            record.set_metadata(build_metadata(text, source_url))
            records.append(record)

        return records
