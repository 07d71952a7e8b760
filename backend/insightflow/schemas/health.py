"""
Pydantic schemas for health check endpoints.
"""

from datetime import datetime
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """
    Response model for the liveness probe.

    Attributes:
        status: "UP" while the service runs
        timestamp: Current UTC timestamp
        service: Service name
        version: Service version
    """
    status: Literal["UP"] = Field(description="Health status indicator")
    timestamp: datetime = Field(description="Current UTC timestamp")
    service: str = Field(description="Service name")
    version: str = Field(description="Service version")


class AIHealthResponse(BaseModel):
    """
    Response model for the model server check.

    Attributes:
        ai_status: "UP" or "DOWN"
        test_duration_ms: Time taken by the check
        error: Failure description when DOWN
    """
    ai_status: Literal["UP", "DOWN"] = Field(description="Model server status")
    test_duration_ms: Optional[float] = Field(default=None, description="Check duration in milliseconds")
    error: Optional[str] = Field(default=None, description="Error message if the check failed")


class HealthCheckDetail(BaseModel):
    healthy: bool = Field(description="Whether the check passed")
    latency_ms: Optional[float] = Field(default=None, description="Check execution time in milliseconds")
    error: Optional[str] = Field(default=None, description="Error message if check failed")


class ReadinessResponse(BaseModel):
    """
    Response model for the readiness probe.

    Attributes:
        status: "ready" when every check passes
        checks: Individual check results (db, llm)
        timestamp: Current UTC timestamp
    """
    status: Literal["ready", "not_ready"] = Field(description="Overall readiness status")
    checks: Dict[str, HealthCheckDetail] = Field(description="Individual dependency checks")
    timestamp: datetime = Field(description="Current UTC timestamp")
