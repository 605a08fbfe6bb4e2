"""Shared test fixtures."""

import json
from collections.abc import Callable

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from swapgate.config import Settings
from swapgate.db.base import Base
# Import all models to register with Base.metadata
import swapgate.db.models  # noqa: F401

WALLET = "0x" + "a" * 40
OTHER_WALLET = "0x" + "b" * 40


class FakeUpstream:
    """Routes outgoing httpx requests to per-host handlers and records them."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handlers: dict[str, Callable[[httpx.Request], httpx.Response]] = {}

    def on(self, host: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handlers[host] = handler

    def json(self, host: str, body, status_code: int = 200) -> None:
        self.on(host, lambda request: httpx.Response(status_code, json=body))

    def calls_to(self, host: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.handlers.get(request.url.host)
        if handler is None:
            return httpx.Response(404, json={"error": "no handler"})
        return handler(request)


def request_json(request: httpx.Request):
    return json.loads(request.content)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        json_logs=False,
        log_level="warning",
        wert_env="sandbox",
        wert_partner_id="partner-01",
        wert_api_key="wert-key",
        wert_create_session_url="https://wert.test/api/v3/partners/sessions",
        oneinch_api_key="oneinch-key",
        oneinch_upstream_base="https://oneinch.test",
        moralis_api_key="moralis-key",
        moralis_upstream_base="https://moralis.test/api/v2.2",
        private_rpc_urls=["https://node-a.test/rpc", "https://node-b.test/rpc"],
        onesignal_app_id="os-app",
        onesignal_api_key="os-key",
        onesignal_api_url="https://onesignal.test/notifications",
        rate_limit_enabled=False,
    )


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
async def http_client(upstream):
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
        yield client


@pytest.fixture
async def db_engine(settings):
    """Create a throwaway SQLite database for one test."""
    engine = create_async_engine(settings.database_url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def app(settings, db_engine, session_factory, http_client):
    """Create a test application wired to the test DB and fake upstreams."""
    from swapgate.main import create_app, init_app_state

    _app = create_app(settings)
    _app.state.db_engine = db_engine
    init_app_state(_app, settings, session_factory, http_client)
    return _app


@pytest.fixture
def ledger(app):
    return app.state.ledger


@pytest.fixture
async def client(app):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
