"""Request logging middleware.

Logs every HTTP request with method, path, status code, latency, the
caller from X-User-Id and a short request ID for correlation. The
request_id is injected into request.state so routers can put it in the
ApiResponse, and echoed back in the X-Request-Id header.

Log format:
    INFO [POST] /api/v1/markets/mkt_.../buy → 201 (4ms) req_a1b2c3d4e5f6 user=alice
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("pm.request")


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.request_id = f"req_{uuid.uuid4().hex[:12]}"
        caller = request.headers.get("x-user-id", "-")

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "[%s] %s → %d (%.0fms) %s user=%s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request.state.request_id,
            caller,
        )
        response.headers["X-Request-Id"] = request.state.request_id
        return response
