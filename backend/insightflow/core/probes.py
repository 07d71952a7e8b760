"""
Readiness probes for /health/ready and /health/ai.

A probe answers True or False within its timeout and never raises.
"""

import asyncio
import logging
from typing import Awaitable

from sqlalchemy import text

from insightflow.core.database import async_session_maker
from insightflow.services.interfaces.llm_client import ILLMClient

logger = logging.getLogger(__name__)


async def _probe(name: str, check: Awaitable[bool], timeout_seconds: float) -> bool:
    try:
        return bool(await asyncio.wait_for(check, timeout=timeout_seconds))
    except asyncio.TimeoutError:
        logger.warning(f"{name} probe timed out", extra={"timeout_seconds": timeout_seconds})
    except Exception as e:
        logger.warning(f"{name} probe failed: {e}", extra={"error_type": type(e).__name__})
    return False


async def _select_one() -> bool:
    async with async_session_maker() as session:
        await session.execute(text("SELECT 1"))
    return True


async def check_database(timeout_seconds: float = 2.0) -> bool:
    return await _probe("Database", _select_one(), timeout_seconds)


async def check_llm(llm_client: ILLMClient, timeout_seconds: float = 10.0) -> bool:
    """True when the model server lists its models in time."""
    return await _probe("LLM", llm_client.health_check(), timeout_seconds)
