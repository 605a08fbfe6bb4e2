"""FastAPI application factory and lifespan management."""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import timedelta

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from swapgate.config import Settings, settings as default_settings
from swapgate.db.engine import create_db_engine, create_session_factory, create_tables
from swapgate.integrations.onesignal import OneSignalNotifier
from swapgate.integrations.token_registry import TokenPolicy, TokenRegistry
from swapgate.integrations.wert import WertSessionProvider
from swapgate.logging_config import configure_logging
from swapgate.relay.proxy import ProxyRelay, UpstreamTarget
from swapgate.relay.rpc import RandomNodeSelector, RpcRelay
from swapgate.relay.stream import PriceStreamRelay
from swapgate.services.analytics import AnalyticsService
from swapgate.services.auth_gate import AuthGate
from swapgate.services.cache_store import CacheStore
from swapgate.services.ledger import SessionLedger
from swapgate.services.notifications import NotificationService

logger = logging.getLogger(__name__)


def _warn_missing_config(cfg: Settings) -> None:
    # Missing credentials only disable the routes that need them
    if not cfg.wert_create_session_url:
        logger.warning("[config] Missing SWAPGATE_WERT_CREATE_SESSION_URL")
    if not cfg.wert_api_key:
        logger.warning("[config] Missing SWAPGATE_WERT_API_KEY")
    if not cfg.oneinch_api_key:
        logger.warning("[config] Missing SWAPGATE_ONEINCH_API_KEY (needed for /api/oneinch proxy)")
    if not cfg.moralis_api_key:
        logger.warning("[config] Missing SWAPGATE_MORALIS_API_KEY (needed for /api/moralis proxy)")


def build_upstream_targets(cfg: Settings) -> dict[str, UpstreamTarget]:
    return {
        "oneinch": UpstreamTarget(
            name="oneinch",
            base_url=cfg.oneinch_upstream_base,
            api_key=cfg.oneinch_api_key,
            auth_header="Authorization",
            auth_prefix="Bearer ",
            cache_ttl=cfg.proxy_cache_ttl_seconds,
            filter_tokens=True,
        ),
        "moralis": UpstreamTarget(
            name="moralis",
            base_url=cfg.moralis_upstream_base,
            api_key=cfg.moralis_api_key,
            auth_header="X-API-Key",
            cache_ttl=cfg.price_cache_ttl_seconds,
        ),
    }


def init_app_state(
    app: FastAPI,
    cfg: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    http_client: httpx.AsyncClient,
) -> None:
    """Wire every process-scoped component onto ``app.state``."""
    cache = CacheStore(default_ttl=cfg.proxy_cache_ttl_seconds)
    notifications = NotificationService(
        session_factory,
        OneSignalNotifier(
            http_client,
            app_id=cfg.onesignal_app_id,
            api_key=cfg.onesignal_api_key,
            api_url=cfg.onesignal_api_url,
        ),
    )

    app.state.settings = cfg
    app.state.db_session_factory = session_factory
    app.state.http_client = http_client
    app.state.cache = cache
    app.state.auth_gate = AuthGate(
        jwt_secret=cfg.jwt_secret,
        hmac_secret=cfg.hmac_secret,
        max_skew_seconds=cfg.hmac_max_skew_seconds,
    )
    app.state.notifications = notifications
    app.state.ledger = SessionLedger(
        session_factory,
        WertSessionProvider(
            http_client,
            create_session_url=cfg.wert_create_session_url,
            api_key=cfg.wert_api_key,
            partner_id=cfg.wert_partner_id,
            auth_scheme=cfg.wert_auth_scheme,
            timeout=cfg.upstream_timeout_seconds,
        ),
        notifications,
        env=cfg.wert_env,
        webhook_secret=cfg.wert_webhook_secret,
        pending_expiry=timedelta(hours=cfg.pending_expiry_hours),
        retention=timedelta(days=cfg.retention_days),
    )
    app.state.analytics = AnalyticsService(
        session_factory, retention=timedelta(days=cfg.retention_days)
    )
    app.state.upstream_targets = build_upstream_targets(cfg)
    app.state.proxy_relay = ProxyRelay(
        http_client,
        cache,
        TokenPolicy(allow=cfg.allow_tokens, deny=cfg.deny_tokens),
        timeout=cfg.upstream_timeout_seconds,
    )
    app.state.stream_relay = PriceStreamRelay(
        http_client,
        base_url=cfg.moralis_upstream_base,
        api_key=cfg.moralis_api_key,
        interval=cfg.price_stream_interval_seconds,
        max_addresses=cfg.price_stream_max_addresses,
        fetch_timeout=cfg.price_fetch_timeout_seconds,
    )
    app.state.rpc_relay = RpcRelay(
        http_client,
        RandomNodeSelector(cfg.private_rpc_urls),
        timeout=cfg.rpc_timeout_seconds,
    )
    app.state.token_registry = TokenRegistry(
        http_client,
        url=cfg.token_registry_url,
        cache=CacheStore(default_ttl=cfg.token_registry_ttl_seconds),
        ttl=cfg.token_registry_ttl_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown resources."""
    cfg: Settings = app.state.settings
    _warn_missing_config(cfg)

    engine = create_db_engine(cfg.database_url)
    await create_tables(engine)
    http_client = httpx.AsyncClient()

    app.state.db_engine = engine
    init_app_state(app, cfg, create_session_factory(engine), http_client)

    from swapgate.workers.scheduler import run_cache_sweeper, run_maintenance_loop

    background = [
        asyncio.create_task(run_cache_sweeper(app, cfg.cache_sweep_interval_seconds)),
        asyncio.create_task(run_maintenance_loop(app, cfg.maintenance_interval_seconds)),
    ]

    logger.info("Gateway started (env=%s)", cfg.wert_env)
    yield

    # Shutdown
    for task in background:
        task.cancel()
    await asyncio.gather(*background, return_exceptions=True)
    await app.state.ledger.drain()
    await http_client.aclose()
    await engine.dispose()
    logger.info("Gateway shutdown complete")


def create_app(cfg: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    cfg = cfg or default_settings
    configure_logging(log_level=cfg.log_level, json_output=cfg.json_logs)

    app = FastAPI(
        title="Swap Wallet Gateway",
        version="0.1.0",
        description="Integration gateway for on-ramp sessions, swap/price proxies, RPC relay and price streaming.",
        lifespan=lifespan,
    )
    app.state.settings = cfg

    # Empty origin list means permissive
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins or ["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add middleware (order matters: last added = first executed)
    from swapgate.api.middleware.access_control import AccessControlMiddleware
    from swapgate.api.middleware.rate_limit import setup_rate_limiter
    from swapgate.api.middleware.trace_id import TraceIdMiddleware

    setup_rate_limiter(app, cfg)
    app.add_middleware(AccessControlMiddleware, deny_ips=cfg.deny_ips, deny_countries=cfg.deny_countries)
    app.add_middleware(TraceIdMiddleware)

    # Register error handlers
    from swapgate.errors.handlers import register_exception_handlers
    register_exception_handlers(app)

    # Prometheus metrics (internal endpoint)
    from prometheus_fastapi_instrumentator import Instrumentator
    Instrumentator(
        should_group_status_codes=True,
        should_respect_env_var=False,
        excluded_handlers=["/healthz", "/api/health.*", "/metrics", "/api/prices/stream"],
    ).instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

    from swapgate.api.router import root_router
    app.include_router(root_router)

    return app
