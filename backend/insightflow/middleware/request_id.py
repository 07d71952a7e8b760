"""
Request correlation ids.

Each request carries an id: the client's X-Request-ID when it looks sane,
otherwise a new UUID. The id is exposed as ``request.state.request_id``,
set in ``request_id_var`` for log records and returned in the response
headers.
"""

import re
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from insightflow.core.logging_config import request_id_var


REQUEST_ID_HEADER = "X-Request-ID"

# Client-supplied ids end up in log lines and response headers
_VALID_REQUEST_ID = re.compile(r"[A-Za-z0-9._:-]{1,128}")


def resolve_request_id(header_value: Optional[str]) -> str:
    if header_value and _VALID_REQUEST_ID.fullmatch(header_value):
        return header_value
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Attach a correlation id to every request.

    Usage in routes:
        request_id = request.state.request_id
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
