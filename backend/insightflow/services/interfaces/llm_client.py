"""
LLM Client Interface Contract.

Defines the contract for language model calls used by the analysis,
comparison and sentiment services. Implementations talk to an
OpenAI-compatible endpoint (Ollama by default).

Key responsibilities:
- Plain text generation with retries and an extended-timeout mode
- Prompt template rendering
- Text embeddings for document retrieval
- Availability checks for health probes
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class ILLMClient(ABC):
    """
    Abstract base class for LLM clients.

    All generation methods raise ``LLMServiceError`` when the model cannot
    produce an answer.
    """

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        correlation_id: Optional[str] = None,
    ) -> str:
        """
        Generate a completion with the default timeout and retry budget.

        On timeout the call is repeated once with twice the timeout and two
        extra retries.

        Args:
            prompt: Fully rendered prompt
            correlation_id: Optional request ID for tracing

        Returns:
            Model reply text

        Raises:
            LLMServiceError: When every attempt failed
        """
        pass

    @abstractmethod
    async def generate_extended(
        self,
        prompt: str,
        correlation_id: Optional[str] = None,
    ) -> str:
        """
        Generate a completion for long-running analyses.

        Uses the extended timeout and retry budget from settings.

        Raises:
            LLMServiceError: When every attempt failed
        """
        pass

    @abstractmethod
    async def generate_from_template(
        self,
        template: str,
        variables: Dict[str, Any],
        extended: bool = False,
        correlation_id: Optional[str] = None,
    ) -> str:
        """
        Render a ``{{name}}`` template and generate a completion.

        Args:
            template: Prompt template
            variables: Placeholder values
            extended: Use ``generate_extended`` instead of ``generate``
            correlation_id: Optional request ID for tracing
        """
        pass

    @abstractmethod
    async def embed(self, texts: List[str]) -> List[List[float]]:
        """
        Embed a batch of texts.

        Returns:
            One vector per input text, in input order

        Raises:
            LLMServiceError: When the embeddings endpoint fails
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check whether the model server answers.

        Returns:
            True if reachable, False otherwise (never raises)
        """
        pass
