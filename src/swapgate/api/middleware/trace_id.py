"""Per-request trace id, echoed to the client and bound into every log line."""

import re
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from swapgate.api.middleware.access_control import client_ip
from swapgate.logging_config import bind_request_context, clear_request_context

TRACE_HEADER = "X-Trace-Id"

# Caller-supplied ids are echoed into logs and headers
_SAFE_TRACE_ID = re.compile(r"^[A-Za-z0-9_.:-]{1,64}$")


def new_trace_id() -> str:
    return f"trc_{uuid.uuid4().hex[:16]}"


class TraceIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        supplied = request.headers.get(TRACE_HEADER, "")
        trace_id = supplied if _SAFE_TRACE_ID.match(supplied) else new_trace_id()
        request.state.trace_id = trace_id
        bind_request_context(trace_id, client_ip(request) or None)
        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers[TRACE_HEADER] = trace_id
        return response
