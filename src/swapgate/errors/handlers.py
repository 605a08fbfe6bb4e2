"""FastAPI exception handlers producing the standard ErrorResponse."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from swapgate.errors.exceptions import GatewayError, InternalError, InvalidInput, Unauthorized
from swapgate.models.common import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


def _render(request: Request, exc: GatewayError) -> JSONResponse:
    trace_id = getattr(request.state, "trace_id", "unknown")
    error_response = ErrorResponse(
        error=ErrorDetail(
            code=exc.code,
            message=exc.message,
            details=exc.details,
            trace_id=trace_id,
            timestamp=datetime.now(timezone.utc),
        ),
    )
    headers = None
    if isinstance(exc, Unauthorized) and exc.code == "ADMIN_UNAUTHORIZED":
        headers = {"WWW-Authenticate": "Basic"}
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response.model_dump(mode="json", exclude_none=True),
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app."""

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        if exc.status_code >= 500:
            logger.error(
                "request_failed",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "code": exc.code,
                    "reason": exc.message,
                },
            )
        elif isinstance(exc, Unauthorized):
            logger.warning(
                "access_denied",
                extra={"path": request.url.path, "method": request.method},
            )
        return _render(request, exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        return _render(request, InvalidInput("Request validation failed", details))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _render(request, InternalError())
