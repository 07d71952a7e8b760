"""
Tests for LinkedInService and its slug helpers.
"""

from unittest.mock import AsyncMock

import pytest

from insightflow.services.analysis_service import AnalysisService
from insightflow.services.linkedin_service import (
    LinkedInService,
    extract_slug_from_url,
    format_for_html,
    generate_fallback_slug,
    is_valid_slug,
    linkedin_company_url,
)
from insightflow.services.llm_client import LLMServiceError


LONG_POST = "Acme announced a new logistics hub and is hiring across engineering and sales. " * 3


@pytest.fixture
def search_client():
    client = AsyncMock()
    client.search_linkedin_company.return_value = []
    client.search.return_value = []
    return client


@pytest.fixture
def scraper():
    mock = AsyncMock()
    mock.extract_text_from_url.return_value = None
    return mock


@pytest.fixture
def service(mock_llm, search_client, scraper):
    return LinkedInService(search_client, scraper, AnalysisService(mock_llm))


class TestSlugHelpers:
    """Tests for the pure slug functions."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://www.linkedin.com/company/acme-corp/", "acme-corp"),
            ("https://linkedin.com/company/acme?trk=foo", "acme"),
            ("https://linkedin.com/company/acme#about", "acme"),
            ("https://linkedin.com/in/someone", ""),
            (None, ""),
        ],
    )
    def test_extract_slug_from_url(self, url, expected):
        assert extract_slug_from_url(url) == expected

    @pytest.mark.parametrize(
        "slug,valid",
        [("acme", True), ("", False), ("a", False), ("12345", False), ("login", False), ("x" * 51, False)],
    )
    def test_is_valid_slug(self, slug, valid):
        assert is_valid_slug(slug) is valid

    def test_fallback_slug_prefers_shorter_form(self):
        assert generate_fallback_slug("Acme Widgets Inc") == "acme-widgets"
        assert generate_fallback_slug("Acme") == "acme"

    def test_fallback_slug_strips_punctuation(self):
        assert generate_fallback_slug("Procter & Gamble") == "proctergamble"

    def test_company_url(self):
        assert linkedin_company_url("acme") == "https://www.linkedin.com/company/acme/"

    def test_format_for_html(self):
        html = format_for_html("#### I. Overview\nGrowing **fast**\n\n\nEnd")

        assert "<strong>I. Overview</strong>" in html
        assert "<strong>fast</strong>" in html
        assert "<br><br><br>" not in html


@pytest.mark.asyncio
class TestGetCompanySlug:
    """Tests for slug resolution."""

    async def test_hardcoded_mapping(self, service, search_client):
        assert await service.get_company_slug(" Tesla ") == "tesla-motors"
        search_client.search_linkedin_company.assert_not_awaited()

    async def test_blank_name(self, service):
        assert await service.get_company_slug("  ") == ""

    async def test_prefers_related_candidate(self, service, search_client):
        """
        Arrange: Search returns an unrelated page first, then the company page
        Act: Resolve slug
        Assert: The slug containing the company name wins
        """
        search_client.search_linkedin_company.return_value = [
            {"url": "https://www.linkedin.com/company/login/"},
            {"url": "https://www.linkedin.com/company/widgets-weekly/"},
            {"url": "https://www.linkedin.com/company/acme-robotics/"},
        ]

        assert await service.get_company_slug("Acme") == "acme-robotics"

    async def test_first_valid_candidate_when_none_related(self, service, search_client):
        search_client.search_linkedin_company.return_value = [
            {"url": "https://www.linkedin.com/company/widgets-weekly/"},
        ]

        assert await service.get_company_slug("Acme") == "widgets-weekly"

    async def test_generated_when_no_candidates(self, service):
        assert await service.get_company_slug("Acme Robotics") == "acmerobotics"

    async def test_describe_slug(self, service):
        described = await service.describe_slug("Netflix")

        assert described == {
            "company_name": "Netflix",
            "linkedin_slug": "netflix",
            "linkedin_url": "https://www.linkedin.com/company/netflix/",
        }


@pytest.mark.asyncio
class TestAnalyze:
    """Tests for LinkedInService.analyze."""

    async def test_generic_analysis_when_content_missing(self, service, mock_llm):
        result = await service.analyze("Netflix")

        assert result.startswith("<strong>LinkedIn Analysis of Netflix</strong><br><br>")
        assert "Limited LinkedIn information is available for Netflix" in result
        mock_llm.generate_from_template.assert_not_awaited()

    async def test_model_analysis_with_content(self, service, search_client, mock_llm):
        """
        Arrange: Search returns a long post on the company page
        Act: Analyze
        Assert: Model reply is formatted as HTML
        """
        search_client.search.return_value = [{"title": "Acme on LinkedIn", "content": LONG_POST}]
        mock_llm.generate_from_template.return_value = "#### I. Company Overview\nLogistics leader"

        result = await service.analyze("Netflix")

        assert "<strong>I. Company Overview</strong>" in result
        assert "Logistics leader" in result
        content = mock_llm.generate_from_template.call_args.args[1]["content"]
        assert "Title: Acme on LinkedIn" in content
        assert search_client.search.call_args.kwargs["include_domains"] == ["linkedin.com/company/netflix"]

    async def test_model_failure_uses_generic(self, service, search_client, mock_llm):
        search_client.search.return_value = [{"title": "", "content": LONG_POST}]
        mock_llm.generate_from_template.side_effect = LLMServiceError("down")

        result = await service.analyze("Netflix")

        assert "Limited LinkedIn information" in result

    async def test_scraped_page_included(self, service, scraper, mock_llm):
        scraper.extract_text_from_url.return_value = LONG_POST
        mock_llm.generate_from_template.return_value = "Overview"

        await service.analyze("Netflix")

        scraper.extract_text_from_url.assert_awaited_once_with("https://www.linkedin.com/company/netflix/")
        assert "MainContent:" in mock_llm.generate_from_template.call_args.args[1]["content"]
