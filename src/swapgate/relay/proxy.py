"""Cached GET pass-through to third-party REST APIs."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import httpx

from swapgate.errors.exceptions import InternalError, ServerMisconfigured, TokenNotAllowed
from swapgate.integrations.token_registry import TokenPolicy
from swapgate.services.cache_store import CacheStore, make_cache_key

logger = logging.getLogger(__name__)

# Query parameters that reference token addresses, in lookup order
FROM_TOKEN_PARAMS = ("fromTokenAddress", "src")
TO_TOKEN_PARAMS = ("toTokenAddress", "dst")


@dataclass(frozen=True)
class UpstreamTarget:
    """One upstream category: where it lives, how to authenticate, how long to cache."""

    name: str
    base_url: str
    api_key: str
    auth_header: str
    auth_prefix: str = ""
    cache_ttl: float = 30.0
    filter_tokens: bool = False
    extra_headers: dict[str, str] = field(default_factory=lambda: {"Accept": "application/json"})

    def headers(self) -> dict[str, str]:
        return {**self.extra_headers, self.auth_header: f"{self.auth_prefix}{self.api_key}"}


@dataclass(frozen=True)
class RelayedResponse:
    status_code: int
    content: bytes
    media_type: str | None = None

    @classmethod
    def from_httpx(cls, response: httpx.Response, status_code: int | None = None) -> RelayedResponse:
        return cls(
            status_code=status_code if status_code is not None else response.status_code,
            content=response.content,
            media_type=response.headers.get("content-type"),
        )


def _first_param(params: Sequence[tuple[str, str]], names: Sequence[str]) -> str:
    for name in names:
        for key, value in params:
            if key == name and value:
                return value
    return ""


class ProxyRelay:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        cache: CacheStore,
        token_policy: TokenPolicy | None = None,
        timeout: float = 15.0,
    ):
        self.http_client = http_client
        self.cache = cache
        self.token_policy = token_policy or TokenPolicy()
        self.timeout = timeout

    def check_tokens(self, params: Sequence[tuple[str, str]]) -> None:
        for names in (FROM_TOKEN_PARAMS, TO_TOKEN_PARAMS):
            address = _first_param(params, names)
            if address and not self.token_policy.is_allowed(address):
                raise TokenNotAllowed(address)

    async def forward(
        self,
        target: UpstreamTarget,
        path_suffix: str,
        params: Sequence[tuple[str, str]] = (),
    ) -> RelayedResponse:
        """GET ``target.base_url + path_suffix``, serving 2xx answers from cache.

        Token filtering only runs on a cache miss. Non-2xx answers are passed
        through and never cached. Transport failures are not retried.
        """
        if not target.api_key:
            raise ServerMisconfigured(f"Missing API key for {target.name}")

        params = list(params)
        cache_key = make_cache_key(target.base_url, path_suffix, params)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        if target.filter_tokens:
            self.check_tokens(params)

        try:
            response = await self.http_client.get(
                f"{target.base_url}{path_suffix}",
                params=params,
                headers=target.headers(),
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            logger.error("%s proxy request failed: %s", target.name, exc)
            raise InternalError() from exc

        relayed = RelayedResponse.from_httpx(response)
        if response.is_success:
            self.cache.set(cache_key, relayed, ttl=target.cache_ttl)
        else:
            logger.info("%s upstream answered %s for %s", target.name, response.status_code, path_suffix)
        return relayed
