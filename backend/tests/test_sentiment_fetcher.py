"""
Tests for SentimentFetcherService.

HTTP calls go through an httpx.MockTransport; the model is an AsyncMock.
"""

import httpx
import pytest
from unittest.mock import patch

from insightflow.core.config import settings
from insightflow.prompts import COMBINED_TEMPLATE
from insightflow.services.llm_client import LLMServiceError
from insightflow.services.sentiment_fetcher import (
    UNKNOWN_SOURCE,
    SentimentFetcherService,
    build_metadata,
    parse_scores,
)


NEWS_BODY = {
    "articles": [
        {"title": "Tesla beats estimates", "description": "Record deliveries", "url": "https://news.example/1"},
        {"title": "Older story", "description": "", "url": "https://news.example/2"},
    ]
}
SOCIAL_BODY = {
    "items": [{"snippet": "People love the new model", "link": "https://social.example/post"}]
}


def _transport(requests, news=NEWS_BODY, social=SOCIAL_BODY, news_status=200):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if "newsapi" in request.url.host:
            return httpx.Response(news_status, json=news)
        return httpx.Response(200, json=social)

    return httpx.MockTransport(handler)


@pytest.fixture
def configured_sources():
    with patch.object(settings, "news_api_key", "news-key"), \
            patch.object(settings, "google_search_api_key", "google-key"), \
            patch.object(settings, "google_search_engine_id", "engine-id"):
        yield


class TestParseScores:
    """Tests for parse_scores."""

    def test_json_reply(self):
        assert parse_scores('{"sentiment_score": 65, "risk_rating": 4}') == (65.0, 4.0)

    def test_json_with_zero_risk(self):
        assert parse_scores('{"sentiment_score": 65, "risk_rating": 0}') == (65.0, 0.0)

    def test_numbers_in_prose(self):
        """
        Arrange: Reply states the scores in prose
        Act: Parse
        Assert: The first two positive numbers are used
        """
        assert parse_scores("Sentiment: 72.5 out of 100, risk 3") == (72.5, 100.0)

    def test_zero_sentiment_json_falls_back_to_numbers(self):
        assert parse_scores('{"sentiment_score": 0, "risk_rating": 4, "confidence": 80}') == (4.0, 80.0)

    def test_nothing_usable(self):
        assert parse_scores("no idea") == (0.0, 0.0)
        assert parse_scores("only 42") == (0.0, 0.0)

    def test_build_metadata(self):
        metadata = build_metadata("three word text", None)

        assert metadata["text_length"] == 15
        assert metadata["word_count"] == 3
        assert metadata["source_reachable"] is False
        assert "processing_timestamp" in metadata


@pytest.mark.asyncio
class TestFetchAndScore:
    """Tests for fetch_and_score."""

    async def test_news_and_social_points(self, mock_llm, configured_sources):
        """
        Arrange: Both sources answer, model returns JSON scores
        Act: Fetch and score
        Assert: One unsaved record per source with metadata
        """
        requests = []
        mock_llm.generate_from_template.return_value = '{"sentiment_score": 70, "risk_rating": 3}'
        async with httpx.AsyncClient(transport=_transport(requests)) as http_client:
            fetcher = SentimentFetcherService(mock_llm, http_client=http_client)

            records = await fetcher.fetch_and_score("Tesla")

        assert [r.source_type for r in records] == ["news", "social"]
        news, social = records
        assert news.company_name == "Tesla"
        assert news.sentiment_score == 70.0
        assert news.risk_rating == 3.0
        assert news.source_identifier == "https://news.example/1"
        assert social.source_identifier == "https://social.example/post"
        assert news.get_metadata()["source_reachable"] is True

        first_call = mock_llm.generate_from_template.call_args_list[0]
        assert first_call.args[0] == COMBINED_TEMPLATE
        assert first_call.args[1]["information"] == "Tesla beats estimates. Record deliveries"

        news_request = requests[0]
        assert news_request.url.path.endswith("/everything")
        assert news_request.url.params["q"] == "Tesla"
        assert news_request.url.params["sortBy"] == "publishedAt"
        assert news_request.url.params["pageSize"] == "5"
        assert requests[1].url.params["q"] == "Tesla social sentiment"
        assert requests[1].url.params["num"] == "5"

    async def test_selected_source_only(self, mock_llm, configured_sources):
        requests = []
        mock_llm.generate_from_template.return_value = '{"sentiment_score": 55, "risk_rating": 5}'
        async with httpx.AsyncClient(transport=_transport(requests)) as http_client:
            records = await SentimentFetcherService(mock_llm, http_client).fetch_and_score("Tesla", ["social"])

        assert [r.source_type for r in records] == ["social"]
        assert len(requests) == 1

    async def test_unscored_point_is_skipped(self, mock_llm, configured_sources):
        requests = []
        mock_llm.generate_from_template.return_value = "I cannot tell."
        async with httpx.AsyncClient(transport=_transport(requests)) as http_client:
            records = await SentimentFetcherService(mock_llm, http_client).fetch_and_score("Tesla")

        assert records == []

    async def test_failing_source_is_skipped(self, mock_llm, configured_sources):
        """
        Arrange: NewsAPI answers 500
        Act: Fetch and score
        Assert: Only the social point is returned
        """
        requests = []
        mock_llm.generate_from_template.return_value = '{"sentiment_score": 60, "risk_rating": 2}'
        async with httpx.AsyncClient(transport=_transport(requests, news_status=500)) as http_client:
            records = await SentimentFetcherService(mock_llm, http_client).fetch_and_score("Tesla")

        assert [r.source_type for r in records] == ["social"]

    async def test_model_failure_is_skipped(self, mock_llm, configured_sources):
        requests = []
        mock_llm.generate_from_template.side_effect = [LLMServiceError("down"), '{"sentiment_score": 60, "risk_rating": 2}']
        async with httpx.AsyncClient(transport=_transport(requests)) as http_client:
            records = await SentimentFetcherService(mock_llm, http_client).fetch_and_score("Tesla")

        assert [r.source_type for r in records] == ["social"]

    async def test_missing_url_uses_unknown(self, mock_llm, configured_sources):
        requests = []
        mock_llm.generate_from_template.return_value = '{"sentiment_score": 60, "risk_rating": 2}'
        social = {"items": [{"snippet": "Mixed feelings"}]}
        async with httpx.AsyncClient(transport=_transport(requests, social=social)) as http_client:
            records = await SentimentFetcherService(mock_llm, http_client).fetch_and_score("Tesla", ["social"])

        assert records[0].source_identifier == UNKNOWN_SOURCE
        assert records[0].get_metadata()["source_reachable"] is False

    async def test_unconfigured_sources_fetch_nothing(self, mock_llm):
        requests = []
        async with httpx.AsyncClient(transport=_transport(requests)) as http_client:
            records = await SentimentFetcherService(mock_llm, http_client).fetch_and_score("Tesla")

        assert records == []
        assert requests == []
        mock_llm.generate_from_template.assert_not_awaited()
