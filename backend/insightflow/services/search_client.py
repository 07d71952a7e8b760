"""
Tavily web search client.

Searches are best effort: a missing API key or a request that still fails
after retries yields an empty result list, never an exception.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from insightflow.core.config import settings
from insightflow.core.retry import retry_with_backoff

logger = logging.getLogger(__name__)


LINKEDIN_COMPANY_DOMAIN = "linkedin.com/company"


class TavilyClient:
    """
    Thin async wrapper over the Tavily ``/search`` endpoint.

    Attributes:
        api_key: Tavily API key (empty disables searching)
        base_url: API root, without trailing slash
    """

    DEFAULT_TIMEOUT = 20.0

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.api_key = settings.tavily_api_key if api_key is None else api_key
        self.base_url = (base_url or settings.tavily_base_url).rstrip("/")
        self.timeout = timeout

    async def search(
        self,
        query: str,
        max_results: int = 3,
        include_domains: Optional[List[str]] = None,
        search_depth: str = "basic",
    ) -> List[Dict[str, Any]]:
        """
        Run a web search.

        Args:
            query: Search query
            max_results: Maximum number of results
            include_domains: Restrict results to these domains
            search_depth: "basic" or "advanced"

        Returns:
            List of ``{url, title, content}`` dicts (empty on failure)
        """
        if not self.api_key:
            logger.warning("Tavily API key not configured, skipping search")
            return []

        payload: Dict[str, Any] = {
            "api_key": self.api_key,
            "query": query,
            "search_depth": search_depth,
            "include_answer": False,
            "include_images": False,
            "max_results": max_results,
        }
        if include_domains:
            payload["include_domains"] = include_domains

        try:
            data = await self._post_search(payload)
        except httpx.HTTPError as e:
            logger.error(
                "Tavily search failed",
                extra={"query": query, "error": str(e)}
            )
            return []

        results = []
        for item in data.get("results") or []:
            url = item.get("url")
            if not url:
                continue
            results.append({
                "url": url,
                "title": item.get("title") or "",
                "content": item.get("content") or "",
            })

        logger.debug(
            "Tavily search completed",
            extra={"query": query, "result_count": len(results)}
        )
        return results

    @retry_with_backoff(max_retries=2, base_delay=1.0, exceptions=(httpx.HTTPError,))
    async def _post_search(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(f"{self.base_url}/search", json=payload)
            response.raise_for_status()
            return response.json()

    async def search_linkedin_company(self, company_name: str) -> List[Dict[str, Any]]:
        """
        Look for a company's LinkedIn page with progressively broader queries.

        Stops widening once enough results are found. Results are
        deduplicated by URL, first occurrence wins.
        """
        domains = [LINKEDIN_COMPANY_DOMAIN]
        results = await self.search(company_name, max_results=5, include_domains=domains)

        if len(results) < 2:
            results += await self.search(
                f'site:linkedin.com/company/ "{company_name}"',
                max_results=3,
                include_domains=domains,
            )

        if len(results) < 3:
            results += await self.search(
                f'linkedin.com "{company_name}" company profile',
                max_results=3,
                include_domains=domains,
            )

        unique: List[Dict[str, Any]] = []
        seen = set()
        for result in results:
            if result["url"] in seen:
                continue
            seen.add(result["url"])
            unique.append(result)

        logger.info(
            "LinkedIn company search completed",
            extra={"company_name": company_name, "result_count": len(unique)}
        )
        return unique
