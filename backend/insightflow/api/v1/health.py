"""
Health check endpoints.

- Liveness probe: /health
- Model server check: /health/ai
- Readiness probe: /health/ready (database and model server)
"""

import asyncio
import time
from datetime import datetime
from typing import Dict

from fastapi import APIRouter, Response, status
from fastapi.responses import JSONResponse

from insightflow.api.dependencies import LLMClient
from insightflow.core.config import settings
from insightflow.core.probes import check_database, check_llm
from insightflow.schemas.health import (
    AIHealthResponse,
    HealthCheckDetail,
    HealthResponse,
    ReadinessResponse,
)


router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
)
async def health_check() -> HealthResponse:
    """
    Basic liveness probe.

    Example response:
        {
            "status": "UP",
            "timestamp": "2025-11-24T10:30:00.123456",
            "service": "InsightFlow",
            "version": "1.0.0"
        }
    """
    return HealthResponse(
        status="UP",
        timestamp=datetime.utcnow(),
        service=settings.project_name,
        version=settings.version,
    )


@router.get(
    "/health/ai",
    response_model=AIHealthResponse,
    summary="Model server check",
    responses={503: {"model": AIHealthResponse}},
)
async def ai_health_check(llm_client: LLMClient):
    """Return 200 when the model server answers, 503 otherwise."""
    start = time.perf_counter()
    try:
        healthy = await llm_client.health_check()
        error = None if healthy else "Model server did not respond"
    except Exception as e:
        healthy, error = False, str(e)
    duration_ms = round((time.perf_counter() - start) * 1000, 2)

    if not healthy:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=AIHealthResponse(ai_status="DOWN", test_duration_ms=duration_ms, error=error).model_dump(),
        )
    return AIHealthResponse(ai_status="UP", test_duration_ms=duration_ms)


async def _timed(probe) -> tuple[bool, float]:
    start = time.perf_counter()
    healthy = await probe
    return healthy, (time.perf_counter() - start) * 1000


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
)
async def readiness_check(response: Response, llm_client: LLMClient) -> ReadinessResponse:
    """
    Readiness probe with dependency checks.

    Runs the database and model server probes in parallel. Returns 503 if
    either fails.

    Example response (unhealthy):
        {
            "status": "not_ready",
            "checks": {
                "db": {"healthy": true, "latency_ms": 10.2},
                "llm": {"healthy": false, "latency_ms": 10000.0, "error": "..."}
            },
            "timestamp": "2025-11-24T10:30:00.123456"
        }
    """
    (db_healthy, db_latency), (llm_healthy, llm_latency) = await asyncio.gather(
        _timed(check_database()),
        _timed(check_llm(llm_client)),
    )

    checks: Dict[str, HealthCheckDetail] = {
        "db": HealthCheckDetail(
            healthy=db_healthy,
            latency_ms=round(db_latency, 2),
            error=None if db_healthy else "Database connection failed or timed out",
        ),
        "llm": HealthCheckDetail(
            healthy=llm_healthy,
            latency_ms=round(llm_latency, 2),
            error=None if llm_healthy else "Model server unreachable or timed out",
        ),
    }

    all_healthy = all(check.healthy for check in checks.values())
    if not all_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(
        status="ready" if all_healthy else "not_ready",
        checks=checks,
        timestamp=datetime.utcnow(),
    )
