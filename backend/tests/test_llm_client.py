"""
Tests for OllamaClient and the retry helpers.

The AsyncOpenAI client is replaced by a MagicMock, so no model server is
needed.
"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from openai import APIConnectionError, APITimeoutError, RateLimitError

from insightflow.core.config import settings
from insightflow.core.retry import compute_backoff_delay, retry_with_backoff
from insightflow.services.llm_client import UNAVAILABLE_MESSAGE, LLMServiceError, OllamaClient


REQUEST = httpx.Request("POST", "http://localhost:11434/v1/chat/completions")


def _completion(text):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = text
    return response


def _timeout():
    return APITimeoutError(request=REQUEST)


def _rate_limited():
    return RateLimitError("slow down", response=httpx.Response(429, request=REQUEST), body=None)


@pytest.fixture
def openai_mock():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=_completion("hello"))
    client.embeddings.create = AsyncMock()
    client.models.list = AsyncMock()
    return client


@pytest.fixture
def llm(openai_mock):
    client = OllamaClient(client=openai_mock)
    client.BASE_DELAY = 0
    return client


@pytest.mark.asyncio
class TestGenerate:
    """Tests for generate and generate_extended."""

    async def test_returns_reply_text(self, llm, openai_mock):
        """
        Arrange: Model answers "hello"
        Act: generate
        Assert: Text returned, configured model and temperature used
        """
        result = await llm.generate("Describe Tesla")

        assert result == "hello"
        kwargs = openai_mock.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == settings.llm_model
        assert kwargs["messages"] == [{"role": "user", "content": "Describe Tesla"}]
        assert kwargs["temperature"] == settings.llm_temperature
        assert kwargs["timeout"] == settings.llm_timeout_seconds

    async def test_empty_content_becomes_empty_string(self, llm, openai_mock):
        openai_mock.chat.completions.create.return_value = _completion(None)

        assert await llm.generate("x") == ""

    async def test_timeout_retried_with_doubled_timeout(self, llm, openai_mock):
        openai_mock.chat.completions.create.side_effect = [_timeout(), _completion("late answer")]

        result = await llm.generate("x")

        assert result == "late answer"
        second = openai_mock.chat.completions.create.call_args_list[1].kwargs
        assert second["timeout"] == settings.llm_timeout_seconds * 2

    async def test_repeated_timeout_raises_unavailable(self, llm, openai_mock):
        openai_mock.chat.completions.create.side_effect = _timeout()

        with pytest.raises(LLMServiceError) as exc_info:
            await llm.generate("x")

        assert str(exc_info.value) == UNAVAILABLE_MESSAGE

    async def test_rate_limit_retried(self, llm, openai_mock):
        llm.max_retries = 3
        openai_mock.chat.completions.create.side_effect = [_rate_limited(), _completion("ok")]

        assert await llm.generate("x") == "ok"
        assert openai_mock.chat.completions.create.await_count == 2

    async def test_connection_errors_exhaust_retries(self, llm, openai_mock):
        llm.max_retries = 2
        openai_mock.chat.completions.create.side_effect = APIConnectionError(request=REQUEST)

        with pytest.raises(LLMServiceError) as exc_info:
            await llm.generate("x")

        assert str(exc_info.value).startswith("AI service error")
        assert openai_mock.chat.completions.create.await_count == 2

    async def test_extended_uses_extended_timeout(self, llm, openai_mock):
        await llm.generate_extended("long prompt")

        kwargs = openai_mock.chat.completions.create.call_args.kwargs
        assert kwargs["timeout"] == settings.llm_extended_timeout_seconds

    async def test_extended_timeout_raises_unavailable(self, llm, openai_mock):
        openai_mock.chat.completions.create.side_effect = _timeout()

        with pytest.raises(LLMServiceError, match="currently unavailable"):
            await llm.generate_extended("x")

    async def test_generate_from_template(self, llm, openai_mock):
        await llm.generate_from_template("Analyse {{company_name}} now", {"company_name": "Tesla"})

        messages = openai_mock.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0]["content"] == "Analyse Tesla now"

    async def test_generate_from_template_extended(self, llm, openai_mock):
        await llm.generate_from_template("{{x}}", {"x": "y"}, extended=True)

        kwargs = openai_mock.chat.completions.create.call_args.kwargs
        assert kwargs["timeout"] == settings.llm_extended_timeout_seconds


@pytest.mark.asyncio
class TestEmbedAndHealth:
    """Tests for embed and health_check."""

    async def test_embed_returns_vectors_in_order(self, llm, openai_mock):
        openai_mock.embeddings.create.return_value = MagicMock(
            data=[MagicMock(embedding=[1.0, 0.0]), MagicMock(embedding=[0.0, 1.0])]
        )

        vectors = await llm.embed(["a", "b"])

        assert vectors == [[1.0, 0.0], [0.0, 1.0]]
        assert openai_mock.embeddings.create.call_args.kwargs["model"] == settings.llm_embedding_model

    async def test_embed_empty_input(self, llm, openai_mock):
        assert await llm.embed([]) == []
        openai_mock.embeddings.create.assert_not_awaited()

    async def test_embed_failure(self, llm, openai_mock):
        openai_mock.embeddings.create.side_effect = APIConnectionError(request=REQUEST)

        with pytest.raises(LLMServiceError):
            await llm.embed(["a"])

    async def test_health_check(self, llm, openai_mock):
        assert await llm.health_check() is True

        openai_mock.models.list.side_effect = APIConnectionError(request=REQUEST)
        assert await llm.health_check() is False


class TestBackoff:
    """Tests for compute_backoff_delay."""

    def test_exponential_growth_without_jitter(self):
        delays = [compute_backoff_delay(n, base_delay=1.0, jitter=False) for n in range(4)]

        assert delays == [1.0, 2.0, 4.0, 8.0]

    def test_capped(self):
        assert compute_backoff_delay(10, base_delay=1.0, max_delay=30.0, jitter=False) == 30.0

    def test_jitter_within_twenty_percent(self):
        for _ in range(20):
            delay = compute_backoff_delay(2, base_delay=1.0)
            assert 3.2 <= delay <= 4.8


@pytest.mark.asyncio
class TestRetryDecorator:
    """Tests for retry_with_backoff."""

    async def test_retries_then_succeeds(self):
        calls = []

        @retry_with_backoff(max_retries=2, base_delay=0, exceptions=(httpx.HTTPError,))
        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise httpx.ConnectError("down")
            return "ok"

        assert await flaky() == "ok"
        assert len(calls) == 3

    async def test_gives_up_after_max_retries(self):
        @retry_with_backoff(max_retries=1, base_delay=0, exceptions=(httpx.HTTPError,))
        async def always_down():
            raise httpx.ConnectError("down")

        with pytest.raises(httpx.ConnectError):
            await always_down()

    async def test_other_exceptions_not_retried(self):
        calls = []

        @retry_with_backoff(max_retries=3, base_delay=0, exceptions=(httpx.HTTPError,))
        async def broken():
            calls.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            await broken()
        assert len(calls) == 1
