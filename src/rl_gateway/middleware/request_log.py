"""Request logging middleware.

One line per request with the caller, status, latency and a request ID.
The bid subsystem may send its own X-Request-ID so an auction-close run can
be traced through the ledger; anything not matching _INBOUND_ID is replaced
with a fresh id. The id is put in request.state for ApiResponse and echoed
back in the X-Request-ID response header.

Log format:
    INFO [POST] /api/v1/riplimit/holds → 200 (12ms) user=u1/user req_a1b2c3d4e5f6
Server errors are logged at WARNING.
"""

import logging
import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.rl_gateway.auth.dependencies import principal_from_header

logger = logging.getLogger("rl.request")

_INBOUND_ID = re.compile(r"^[A-Za-z0-9_.:-]{8,64}$")


def _request_id(request: Request) -> str:
    inbound = request.headers.get("x-request-id", "")
    if _INBOUND_ID.match(inbound):
        return inbound
    return f"req_{uuid.uuid4().hex[:12]}"


def _caller(request: Request) -> str:
    principal = principal_from_header(request.headers.get("authorization", ""))
    if principal is None:
        return "-"
    return f"{principal.user_id}/{principal.role.value}"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = _request_id(request)
        request.state.request_id = request_id

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        response.headers["X-Request-ID"] = request_id
        logger.log(
            logging.WARNING if response.status_code >= 500 else logging.INFO,
            "[%s] %s → %d (%.0fms) user=%s %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            _caller(request),
            request_id,
        )
        return response
