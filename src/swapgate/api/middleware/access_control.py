"""IP and country deny-list gating."""

import logging
from datetime import datetime, timezone

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from swapgate.errors.exceptions import AccessDenied
from swapgate.models.common import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    """First ``X-Forwarded-For`` hop, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else ""


def client_country(request: Request) -> str:
    return (request.headers.get("cf-ipcountry") or request.headers.get("x-country") or "").upper()


class AccessControlMiddleware(BaseHTTPMiddleware):
    """Answer 451 for denied IPs or countries before any route runs."""

    def __init__(self, app, deny_ips: list[str] | None = None, deny_countries: list[str] | None = None):
        super().__init__(app)
        self.deny_ips = set(deny_ips or [])
        self.deny_countries = {c.upper() for c in deny_countries or []}

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        denied = None
        ip = client_ip(request)
        if ip and ip in self.deny_ips:
            denied = AccessDenied("IP blocked")
        elif self.deny_countries:
            country = client_country(request)
            if country and country in self.deny_countries:
                denied = AccessDenied("Geo blocked")

        if denied is None:
            return await call_next(request)

        logger.info("Blocked request from %s: %s", ip, denied.message)
        body = ErrorResponse(
            error=ErrorDetail(
                code=denied.code,
                message=denied.message,
                trace_id=getattr(request.state, "trace_id", "unknown"),
                timestamp=datetime.now(timezone.utc),
            )
        )
        return JSONResponse(status_code=denied.status_code, content=body.model_dump(mode="json", exclude_none=True))
