"""
Integration tests for analysis, RAG and LinkedIn endpoints.

Web search is unconfigured in tests, so a full analysis runs entirely on
the mocked model: frameworks fall back to their canned results and the
LinkedIn section uses the generic text.
"""

from unittest.mock import AsyncMock

import pytest

from insightflow.api.dependencies import get_company_analysis_service
from insightflow.main import app
from insightflow.models.analysis import AnalysisStatus
from insightflow.repositories.analysis import AnalysisRepository
from insightflow.services.company_analysis import GENERIC_SOURCES
from insightflow.services.llm_client import UNAVAILABLE_MESSAGE, LLMServiceError
from insightflow.services.response_parser import get_fallback


SWOT_REPLY = '{"strengths": ["Brand"], "weaknesses": ["Cost"], "opportunities": ["Asia"], "threats": ["Rivals"]}'


@pytest.fixture
def failing_analysis():
    service = AsyncMock()
    service.analyze.side_effect = LLMServiceError(UNAVAILABLE_MESSAGE)
    service.run.side_effect = LLMServiceError(UNAVAILABLE_MESSAGE)
    app.dependency_overrides[get_company_analysis_service] = lambda: service
    return service


@pytest.mark.asyncio
class TestAnalyzeEndpoint:
    """Tests for POST /api/analyze."""

    async def test_full_analysis_saved(self, client, auth_headers, test_user, db_session):
        """
        Arrange: Authenticated user, model returns unusable text
        Act: POST /api/analyze
        Assert: Complete result with fallbacks, stored as COMPLETED
        """
        response = await client.post("/api/analyze", data={"company_name": "Tesla"}, headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["company_name"] == "Tesla"
        assert data["swot_lists"] == get_fallback("swot")
        assert data["porter_forces"] == get_fallback("porter")
        assert data["sources"] == list(GENERIC_SOURCES)
        assert data["swot_image"]
        assert data["mckinsey_image"]
        assert "LinkedIn Analysis of Tesla" in data["linkedin_analysis"]
        assert data["requested_by"] == test_user.id

        stored = await AnalysisRepository(db_session).get(data["analysis_id"])
        assert stored.status == AnalysisStatus.COMPLETED
        assert stored.company_name == "Tesla"

    async def test_model_reply_parsed(self, client, auth_headers, mock_llm):
        mock_llm.generate_from_template.return_value = SWOT_REPLY

        response = await client.post(
            "/api/analyze", data={"company_name": "Tesla", "save": "false"}, headers=auth_headers
        )

        data = response.json()
        assert data["swot_lists"]["strengths"] == ["Brand"]
        assert data["analysis_id"] is None

    async def test_document_upload(self, client, auth_headers):
        response = await client.post(
            "/api/analyze",
            data={"company_name": "Tesla"},
            files={"file": ("us.txt", b"We build e-bikes for cities.", "text/plain")},
            headers=auth_headers,
        )

        assert response.status_code == 200

    async def test_company_name_required(self, client, auth_headers):
        response = await client.post("/api/analyze", data={"company_name": "  "}, headers=auth_headers)

        assert response.status_code == 400

    async def test_requires_authentication(self, client):
        response = await client.post("/api/analyze", data={"company_name": "Tesla"})

        assert response.status_code == 401

    async def test_model_unavailable(self, client, auth_headers, failing_analysis):
        response = await client.post("/api/analyze", data={"company_name": "Tesla"}, headers=auth_headers)

        assert response.status_code == 503
        assert response.json()["detail"] == UNAVAILABLE_MESSAGE


@pytest.mark.asyncio
class TestGenerateCompanyFile:
    """Tests for POST /api/generate-company-file."""

    async def test_from_payload(self, client, auth_headers):
        payload = {
            "companyName": "Tesla",
            "swotLists": {"strengths": ["Brand"]},
            "summaries": ["EV maker"],
        }

        response = await client.post("/api/generate-company-file", json=payload, headers=auth_headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert 'filename="Tesla_analysis.txt"' in response.headers["content-disposition"]
        assert "COMPANY ANALYSIS REPORT: Tesla" in response.text
        assert "  - Brand" in response.text

    async def test_from_stored_analysis(self, client, auth_headers, test_user, db_session):
        analysis = await AnalysisRepository(db_session).create(
            user_id=test_user.id,
            company_name="Ford",
            status=AnalysisStatus.COMPLETED,
            result={"summaries": ["Carmaker"], "sources": ["https://ford.example"]},
        )
        await db_session.commit()

        response = await client.post(
            "/api/generate-company-file", json={"analysis_id": analysis.id}, headers=auth_headers
        )

        assert response.status_code == 200
        assert "COMPANY ANALYSIS REPORT: Ford" in response.text
        assert "  1. https://ford.example" in response.text

    async def test_stored_analysis_of_other_user(self, client, auth_headers, db_session):
        analysis = await AnalysisRepository(db_session).create(user_id="someone-else", company_name="Ford")
        await db_session.commit()

        response = await client.post(
            "/api/generate-company-file", json={"analysisId": analysis.id}, headers=auth_headers
        )

        assert response.status_code == 403

    async def test_unknown_analysis(self, client, auth_headers):
        response = await client.post(
            "/api/generate-company-file", json={"analysis_id": "missing"}, headers=auth_headers
        )

        assert response.status_code == 404

    async def test_bare_company_name_runs_analysis(self, client, auth_headers, test_user, db_session):
        response = await client.post(
            "/api/generate-company-file", json={"company_name": "Netflix"}, headers=auth_headers
        )

        assert response.status_code == 200
        assert "Limited LinkedIn information is available for Netflix" in response.text
        assert await AnalysisRepository(db_session).count_for_user(test_user.id) == 0

    async def test_empty_payload(self, client, auth_headers):
        response = await client.post("/api/generate-company-file", json={}, headers=auth_headers)

        assert response.status_code == 400

    async def test_non_numeric_bcg_rejected(self, client, auth_headers):
        payload = {"companyName": "Acme", "bcg_matrix": {"Widget": {"market_share": "high"}}}

        response = await client.post("/api/generate-company-file", json=payload, headers=auth_headers)

        assert response.status_code == 400
        assert "bcg_matrix" in response.json()["detail"]

    async def test_list_for_framework_dict_rejected(self, client, auth_headers, failing_analysis):
        payload = {"companyName": "Acme", "porterForces": ["rivalry"]}

        response = await client.post("/api/generate-company-file", json=payload, headers=auth_headers)

        assert response.status_code == 400
        failing_analysis.run.assert_not_called()

    async def test_numeric_string_bcg_accepted(self, client, auth_headers):
        payload = {"companyName": "Acme", "bcgMatrix": {"Widget": {"marketShare": "0.7", "growthRate": 15}}}

        response = await client.post("/api/generate-company-file", json=payload, headers=auth_headers)

        assert response.status_code == 200
        assert "Widget: market share 0.70, growth rate 15.0% [STAR]" in response.text

    async def test_model_unavailable(self, client, auth_headers, failing_analysis):
        response = await client.post(
            "/api/generate-company-file", json={"company_name": "Netflix"}, headers=auth_headers
        )

        assert response.status_code == 503


@pytest.mark.asyncio
class TestRagAndLinkedInEndpoints:
    """Tests for /api/rag and /api/linkedin."""

    async def test_rag_analyze(self, client, auth_headers, test_user):
        response = await client.post("/api/rag/analyze", json={"companyName": "Tesla"}, headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["company_name"] == "Tesla"
        assert data["links"] == []
        assert data["requested_by"] == test_user.username

    async def test_rag_analyze_requires_company(self, client, auth_headers):
        response = await client.post("/api/rag/analyze", json={"companyName": "   "}, headers=auth_headers)

        assert response.status_code == 400

    async def test_rag_query(self, client, auth_headers, mock_llm):
        mock_llm.embed.return_value = [[1.0, 0.0], [1.0, 0.0]]
        mock_llm.generate_from_template.return_value = "About 10%."

        response = await client.post(
            "/api/rag/query",
            json={"query": "How fast is revenue growing?", "context": "Revenue grows about 10% a year."},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"answer": "About 10%."}

    async def test_rag_query_blank(self, client, auth_headers):
        response = await client.post(
            "/api/rag/query", json={"query": " ", "context": "text"}, headers=auth_headers
        )

        assert response.status_code == 400

    async def test_rag_query_model_down(self, client, auth_headers, mock_llm):
        mock_llm.embed.return_value = [[1.0], [1.0]]
        mock_llm.generate_from_template.side_effect = LLMServiceError(UNAVAILABLE_MESSAGE)

        response = await client.post(
            "/api/rag/query", json={"query": "Why?", "context": "Because."}, headers=auth_headers
        )

        assert response.status_code == 503

    async def test_linkedin_slug(self, client, auth_headers):
        response = await client.post(
            "/api/linkedin/generate-slug", json={"companyName": "Tesla"}, headers=auth_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["linkedin_slug"] == "tesla-motors"
        assert data["linkedin_url"] == "https://www.linkedin.com/company/tesla-motors/"
        assert data["success"] is True
        assert data["duration_ms"] >= 0
