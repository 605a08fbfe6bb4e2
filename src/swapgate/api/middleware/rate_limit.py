"""Rate limiting using slowapi."""

import logging

from fastapi import FastAPI
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.requests import Request

from swapgate.api.middleware.access_control import client_ip
from swapgate.config import Settings

logger = logging.getLogger(__name__)


def _rate_limit_key(request: Request) -> str:
    return client_ip(request) or "unknown"


def setup_rate_limiter(app: FastAPI, settings: Settings) -> None:
    """Attach an in-process per-IP limiter applied to every route."""
    if not settings.rate_limit_enabled:
        return

    limiter = Limiter(
        key_func=_rate_limit_key,
        default_limits=[f"{settings.rate_limit_per_minute}/minute"],
        storage_uri="memory://",
    )
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
    logger.info("Rate limiter configured (%d/min per IP)", settings.rate_limit_per_minute)
