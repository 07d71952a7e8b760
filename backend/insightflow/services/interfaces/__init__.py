"""Service interface contracts (ABCs)"""

from insightflow.services.interfaces.llm_client import ILLMClient

__all__ = [
    'ILLMClient',
]
