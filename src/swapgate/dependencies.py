"""FastAPI dependency injection providers."""

import secrets
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from swapgate.config import Settings
from swapgate.errors.exceptions import Unauthorized
from swapgate.integrations.token_registry import TokenRegistry
from swapgate.relay.proxy import ProxyRelay, UpstreamTarget
from swapgate.relay.rpc import RpcRelay
from swapgate.relay.stream import PriceStreamRelay
from swapgate.services.analytics import AnalyticsService
from swapgate.services.auth_gate import AuthGate
from swapgate.services.ledger import SessionLedger
from swapgate.services.notifications import NotificationService

_basic = HTTPBasic(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_trace_id(request: Request) -> str:
    """Extract trace_id from request state (set by middleware)."""
    return getattr(request.state, "trace_id", "unknown")


def get_ledger(request: Request) -> SessionLedger:
    return request.app.state.ledger


def get_notifications(request: Request) -> NotificationService:
    return request.app.state.notifications


def get_analytics(request: Request) -> AnalyticsService:
    return request.app.state.analytics


def get_proxy_relay(request: Request) -> ProxyRelay:
    return request.app.state.proxy_relay


def get_upstream_targets(request: Request) -> dict[str, UpstreamTarget]:
    return request.app.state.upstream_targets


def get_stream_relay(request: Request) -> PriceStreamRelay:
    return request.app.state.stream_relay


def get_rpc_relay(request: Request) -> RpcRelay:
    return request.app.state.rpc_relay


def get_token_registry(request: Request) -> TokenRegistry:
    return request.app.state.token_registry


async def require_app_auth(request: Request) -> None:
    """Gate write requests behind the JWT or timestamped-HMAC scheme."""
    gate: AuthGate = request.app.state.auth_gate
    if not gate.enabled:
        return
    raw_body = await request.body()
    if not gate.is_authorized(request.method, request.headers, raw_body):
        raise Unauthorized()


async def require_admin(
    request: Request,
    credentials: HTTPBasicCredentials | None = Depends(_basic),
) -> str:
    """HTTP Basic check against the configured admin credentials."""
    settings: Settings = request.app.state.settings
    if not (settings.basic_auth_user and settings.basic_auth_pass):
        raise Unauthorized("Admin auth not configured", code="ADMIN_AUTH_NOT_CONFIGURED")
    if credentials is None:
        raise Unauthorized("Admin credentials required", code="ADMIN_UNAUTHORIZED")
    user_ok = secrets.compare_digest(
        credentials.username.encode("utf-8"), settings.basic_auth_user.encode("utf-8")
    )
    pass_ok = secrets.compare_digest(
        credentials.password.encode("utf-8"), settings.basic_auth_pass.encode("utf-8")
    )
    if not (user_ok and pass_ok):
        raise Unauthorized("Invalid admin credentials", code="ADMIN_UNAUTHORIZED")
    return credentials.username


# Type aliases for dependency injection
TraceId = Annotated[str, Depends(get_trace_id)]
Ledger = Annotated[SessionLedger, Depends(get_ledger)]
Notifications = Annotated[NotificationService, Depends(get_notifications)]
Analytics = Annotated[AnalyticsService, Depends(get_analytics)]
AppSettings = Annotated[Settings, Depends(get_settings)]
RequireAppAuth = Depends(require_app_auth)
RequireAdmin = Depends(require_admin)
