"""Request id propagation and one access log line per request.

Only the method, path, status and latency are logged. Request bodies carry
sermon text and are never read here.
"""

import logging
import re
from time import perf_counter
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("shg.access")

_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def inbound_request_id(value: str | None) -> str:
    """Reuse a caller-supplied id when it is short and log-safe, else mint one."""
    candidate = (value or "").strip()
    if _REQUEST_ID_PATTERN.match(candidate):
        return candidate
    return str(uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = inbound_request_id(request.headers.get("x-request-id"))
        request.state.request_id = request_id
        started = perf_counter()

        response = await call_next(request)

        response.headers["x-request-id"] = request_id
        logger.info(
            "request_completed",
            extra={
                "request_id": request_id,
                "tenant_id": getattr(request.state, "tenant_id", None),
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "latency_ms": round((perf_counter() - started) * 1000, 2),
            },
        )
        return response
