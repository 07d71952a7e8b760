"""
LinkedIn company intelligence.

Resolves a company's LinkedIn slug from search results and produces a
short HTML-formatted strategic summary of what the search and scraping
layers could find about its LinkedIn presence.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from insightflow.services.analysis_service import AnalysisService
from insightflow.services.llm_client import LLMServiceError
from insightflow.services.scraping import ScrapingService
from insightflow.services.search_client import TavilyClient

logger = logging.getLogger(__name__)


HARDCODED_SLUGS = {
    "tesla": "tesla-motors",
    "meta": "meta",
    "facebook": "meta",
    "alphabet": "google",
    "x": "twitter",
    "twitter": "twitter",
    "openai": "openai",
    "microsoft": "microsoft",
    "apple": "apple",
    "amazon": "amazon",
    "netflix": "netflix",
}

INVALID_SLUGS = frozenset({"home", "login", "company", "about", "help", "search", "feed", "messaging"})

MIN_CONTENT_LENGTH = 100
MAX_CONTENT_LENGTH = 30000

_CORPORATE_SUFFIX = re.compile(r"\b(inc|corp|corporation|ltd|llc|company)\b")


def linkedin_company_url(slug: str) -> str:
    return f"https://www.linkedin.com/company/{slug}/"


def extract_slug_from_url(url: Optional[str]) -> str:
    """
    Pull the slug out of a ``linkedin.com/company/<slug>`` URL.

    Returns:
        The slug, or "" if the URL is not a company page
    """
    if not url or "linkedin.com/company/" not in url:
        return ""
    slug = url[url.index("/company/") + len("/company/"):]
    return re.sub(r"[/?#].*", "", slug)


def is_valid_slug(slug: str) -> bool:
    """Reject empty, numeric, generic-path and overlong slugs."""
    if not slug or not slug.strip():
        return False
    lower = slug.lower()
    if len(lower) < 2 or lower.isdigit():
        return False
    if lower in INVALID_SLUGS:
        return False
    return len(slug) <= 50


def _hyphenate(text: str) -> str:
    text = re.sub(r"[^a-z0-9\s]", "", text)
    text = re.sub(r"\s+", "-", text.strip())
    text = re.sub(r"-+", "-", text)
    return text.strip("-")


def generate_fallback_slug(company_name: str) -> str:
    """
    Derive a slug from the company name alone.

    Builds three normalizations (raw alphanumerics, hyphenated words,
    hyphenated words without corporate suffixes). Starting from the first,
    a later one replaces it only when shorter and longer than one character.
    """
    lower = company_name.lower()
    compact = re.sub(r"[^a-z0-9-]", "", lower)
    hyphenated = _hyphenate(lower)
    without_suffix = _hyphenate(_CORPORATE_SUFFIX.sub("", lower))

    best = compact
    for candidate in (hyphenated, without_suffix):
        if len(candidate) > 1 and len(candidate) < len(best):
            best = candidate
    return best


class LinkedInService:
    """
    LinkedIn slug resolution and analysis.

    Attributes:
        search_client: Tavily client used to discover company pages
        scraper: Scraper used to read public LinkedIn pages when reachable
        analysis_service: Model-backed analysis prompts
    """

    def __init__(
        self,
        search_client: TavilyClient,
        scraper: ScrapingService,
        analysis_service: AnalysisService,
    ):
        self.search_client = search_client
        self.scraper = scraper
        self.analysis_service = analysis_service

    async def get_company_slug(self, company_name: str) -> str:
        """
        Resolve the LinkedIn company slug.

        Known companies use a fixed mapping. Others are looked up through
        LinkedIn-restricted search; candidates related to the name are
        preferred, and a name-derived slug is used when search finds nothing.

        Returns:
            Slug, or "" for a blank company name
        """
        if not company_name or not company_name.strip():
            return ""

        normalized = company_name.lower().strip()
        if normalized in HARDCODED_SLUGS:
            return HARDCODED_SLUGS[normalized]

        results = await self.search_client.search_linkedin_company(company_name)
        candidates = [
            slug for slug in (extract_slug_from_url(r.get("url")) for r in results)
            if is_valid_slug(slug)
        ]

        if not candidates:
            slug = generate_fallback_slug(company_name)
            logger.info(
                "No LinkedIn candidates found, using generated slug",
                extra={"company_name": company_name, "slug": slug}
            )
            return slug

        for slug in candidates:
            lower_slug = slug.lower()
            if normalized in lower_slug or lower_slug in normalized:
                return slug
        return candidates[0]

    async def _collect_content(self, company_name: str, slug: str) -> str:
        sections: List[str] = []

        results = await self.search_client.search(
            f"{company_name} LinkedIn company",
            max_results=5,
            include_domains=[f"linkedin.com/company/{slug}"],
        )
        for result in results:
            if result.get("title"):
                sections.append(f"Title: {result['title']}")
            if result.get("content"):
                sections.append(f"Post: {result['content']}")

        page_text = await self.scraper.extract_text_from_url(linkedin_company_url(slug))
        if page_text:
            sections.append(f"MainContent: {page_text}")

        content = "\n".join(sections).strip()
        if len(content) > MAX_CONTENT_LENGTH:
            content = content[:MAX_CONTENT_LENGTH] + "... [Truncated for analysis]"
        return content

    async def analyze(self, company_name: str, correlation_id: Optional[str] = None) -> str:
        """
        Produce the HTML LinkedIn analysis for a company.

        Falls back to a short generic analysis when too little content is
        found or the model fails.
        """
        slug = await self.get_company_slug(company_name)
        content = await self._collect_content(company_name, slug) if slug else ""

        if len(content) < MIN_CONTENT_LENGTH:
            logger.info(
                "Insufficient LinkedIn content, using generic analysis",
                extra={"company_name": company_name, "content_length": len(content)}
            )
            analysis = generic_linkedin_analysis(company_name)
        else:
            try:
                analysis = await self.analysis_service.analyze_linkedin_content(
                    company_name, content, correlation_id=correlation_id
                )
            except LLMServiceError as e:
                logger.warning(
                    "LinkedIn analysis failed, using generic analysis",
                    extra={"company_name": company_name, "error": str(e)}
                )
                analysis = generic_linkedin_analysis(company_name)

            if not analysis or not analysis.strip():
                analysis = generic_linkedin_analysis(company_name)

        return f"<strong>LinkedIn Analysis of {company_name}</strong><br><br>" + format_for_html(analysis)

    async def describe_slug(self, company_name: str) -> Dict[str, Any]:
        """Slug plus canonical company page URL."""
        slug = await self.get_company_slug(company_name)
        return {
            "company_name": company_name,
            "linkedin_slug": slug,
            "linkedin_url": linkedin_company_url(slug),
        }


def generic_linkedin_analysis(company_name: str) -> str:
    return (
        f"#### I. Company Overview\n"
        f"Limited LinkedIn information is available for {company_name}.\n\n"
        f"#### II. Recent Activities\n"
        f"No recent LinkedIn activity could be retrieved.\n\n"
        f"#### III. Market Presence\n"
        f"Market presence should be assessed from other sources such as official "
        f"company pages and industry reports.\n\n"
        f"#### IV. Additional Insights\n"
        f"Consider reviewing {company_name}'s LinkedIn page directly for up-to-date information."
    )


def format_for_html(text: str) -> str:
    """Convert the model's markdown-ish reply to the inline HTML shown in the UI."""
    html = text.replace("\n", "<br>")
    html = re.sub(r"(<br>){2,}", "<br>", html)
    html = re.sub(r"####\s*([^<]+)", r"<strong>\1</strong><br>", html)
    html = re.sub(r"\*\*([^*]+)\*\*", r"<strong>\1</strong>", html)
    html = re.sub(r" {2,}", " ", html)
    return html
