"""
Access logging middleware.

One record when a request starts, one when it completes with status and
latency, or an error record with the traceback when the handler raises.
Register it before RequestIDMiddleware (so it runs inside it) to get the
request id on every record.
"""

import time
from typing import Any, Callable, Dict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from insightflow.core.logging_config import get_logger


logger = get_logger(__name__)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Structured request logging.

    Completion record (JSON):
        {"message": "Request completed", "method": "POST", "path": "/api/analyze",
         "status_code": 200, "latency_ms": 5321.7, "request_id": "abc-123"}
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        context: Dict[str, Any] = {
            "method": request.method,
            "path": request.url.path,
            "request_id": getattr(request.state, "request_id", None),
        }
        logger.info(
            "Request started",
            extra={
                **context,
                "query_params": str(request.query_params) or None,
                "client_host": request.client.host if request.client else None,
            }
        )

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"Request failed: {exc}",
                extra={**context, "latency_ms": _elapsed_ms(started), "exception_type": type(exc).__name__},
                exc_info=True
            )
            raise

        logger.info(
            "Request completed",
            extra={**context, "status_code": response.status_code, "latency_ms": _elapsed_ms(started)}
        )
        return response
