"""
Language model client for Ollama and other OpenAI-compatible servers.

Retry rules:
- Rate limits and connection errors back off exponentially, up to
  ``llm_max_retries`` attempts
- Any other API error is retried once
- A timeout is not retried in place; ``generate`` makes one more round with
  twice the timeout and two extra attempts before giving up
- ``generate_extended`` uses the long timeout and gives up on a timeout

Every failure reaching callers is an ``LLMServiceError`` whose message can
be shown to API clients.
"""

import asyncio
import logging
import time
import uuid
from typing import Any, Dict, List, Optional

from openai import APIConnectionError, APIError, APITimeoutError, AsyncOpenAI, RateLimitError

from insightflow.core.config import settings
from insightflow.core.logging_config import get_request_id
from insightflow.core.retry import compute_backoff_delay
from insightflow.prompts import render_template
from insightflow.services.interfaces.llm_client import ILLMClient

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "AI service is currently unavailable. Please try again later."


class LLMServiceError(Exception):
    """The model could not answer. ``str(error)`` is safe to return to clients."""


def _service_error(error: Exception) -> LLMServiceError:
    return LLMServiceError(f"AI service error: {error}")


class OllamaClient(ILLMClient):
    """
    Chat completions and embeddings through the ``openai`` SDK.

    The SDK's own retries are disabled; this class applies the rules in
    the module docstring.
    """

    BASE_DELAY = 1.0
    MAX_DELAY = 30.0

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        """
        Args:
            client: Preconfigured AsyncOpenAI instance; built from settings
                when omitted
        """
        self.client = client or AsyncOpenAI(
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
            max_retries=0,
        )
        self.model = settings.llm_model
        self.embedding_model = settings.llm_embedding_model
        self.temperature = settings.llm_temperature
        self.timeout = settings.llm_timeout_seconds
        self.max_retries = settings.llm_max_retries

        logger.info(
            "OllamaClient initialized",
            extra={"model": self.model, "base_url": settings.llm_base_url, "timeout": self.timeout}
        )

    async def generate(self, prompt: str, correlation_id: Optional[str] = None) -> str:
        correlation_id = correlation_id or get_request_id() or str(uuid.uuid4())

        try:
            return await self._complete(prompt, self.timeout, self.max_retries, correlation_id)
        except APITimeoutError:
            logger.warning(
                "LLM request timed out, escalating",
                extra={"correlation_id": correlation_id, "timeout": self.timeout}
            )
        except APIError as e:
            logger.error(
                "LLM request failed",
                extra={"correlation_id": correlation_id, "error_type": type(e).__name__, "error": str(e)}
            )
            raise _service_error(e) from e

        try:
            return await self._complete(prompt, self.timeout * 2, self.max_retries + 2, correlation_id)
        except APIError as e:
            logger.error(
                "LLM request failed after escalation",
                extra={"correlation_id": correlation_id, "error_type": type(e).__name__, "error": str(e)}
            )
            raise LLMServiceError(UNAVAILABLE_MESSAGE) from e

    async def generate_extended(self, prompt: str, correlation_id: Optional[str] = None) -> str:
        """Single round with the extended timeout, for long framework analyses."""
        correlation_id = correlation_id or get_request_id() or str(uuid.uuid4())
        timeout = settings.llm_extended_timeout_seconds

        logger.info("Invoking LLM with extended timeout", extra={"correlation_id": correlation_id, "timeout": timeout})
        try:
            return await self._complete(prompt, timeout, settings.llm_extended_max_retries, correlation_id)
        except APITimeoutError as e:
            raise LLMServiceError(UNAVAILABLE_MESSAGE) from e
        except APIError as e:
            logger.error(
                "Extended LLM request failed",
                extra={"correlation_id": correlation_id, "error_type": type(e).__name__, "error": str(e)}
            )
            raise _service_error(e) from e

    async def generate_from_template(
        self,
        template: str,
        variables: Dict[str, Any],
        extended: bool = False,
        correlation_id: Optional[str] = None,
    ) -> str:
        prompt = render_template(template, variables)
        if extended:
            return await self.generate_extended(prompt, correlation_id=correlation_id)
        return await self.generate(prompt, correlation_id=correlation_id)

    async def embed(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        try:
            response = await self.client.embeddings.create(
                model=self.embedding_model,
                input=texts,
                timeout=self.timeout,
            )
        except APIError as e:
            logger.error(
                "Embedding request failed",
                extra={"model": self.embedding_model, "text_count": len(texts), "error": str(e)}
            )
            raise _service_error(e) from e
        return [item.embedding for item in response.data]

    async def health_check(self) -> bool:
        try:
            await self.client.models.list(timeout=10.0)
        except Exception as e:
            logger.warning("LLM health check failed", extra={"error": str(e)})
            return False
        return True

    async def _complete(self, prompt: str, timeout: float, max_retries: int, correlation_id: str) -> str:
        """
        One round of chat completion attempts.

        Raises:
            APITimeoutError: At the first timeout
            APIError: The last error once attempts run out
        """
        attempts = max(1, max_retries)
        generic_retry_used = False

        for attempt in range(attempts):
            started = time.perf_counter()
            try:
                response = await self.client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=self.temperature,
                    timeout=timeout,
                )
            except APITimeoutError:
                raise
            except (RateLimitError, APIConnectionError) as e:
                if attempt == attempts - 1:
                    logger.error(
                        "LLM retries exhausted",
                        extra={"correlation_id": correlation_id, "attempts": attempts, "error": str(e)}
                    )
                    raise
                delay = compute_backoff_delay(attempt, self.BASE_DELAY, self.MAX_DELAY, jitter=False)
                logger.warning(
                    f"Transient LLM error ({type(e).__name__}), retrying in {delay:.1f}s",
                    extra={"correlation_id": correlation_id, "attempt": attempt + 1}
                )
                await asyncio.sleep(delay)
                continue
            except APIError as e:
                if generic_retry_used or attempt == attempts - 1:
                    raise
                generic_retry_used = True
                logger.warning(
                    "LLM API error, retrying once",
                    extra={"correlation_id": correlation_id, "error_type": type(e).__name__, "error": str(e)}
                )
                await asyncio.sleep(self.BASE_DELAY)
                continue

            text = response.choices[0].message.content or ""
            logger.info(
                "LLM response received",
                extra={
                    "correlation_id": correlation_id,
                    "model": self.model,
                    "prompt_length": len(prompt),
                    "response_length": len(text),
                    "latency_ms": round((time.perf_counter() - started) * 1000, 2),
                }
            )
            return text

        raise LLMServiceError(UNAVAILABLE_MESSAGE)
