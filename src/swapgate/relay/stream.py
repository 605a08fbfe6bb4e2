"""Server-Sent Events relay that polls the price API per client connection."""

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import httpx

from swapgate.errors.exceptions import InvalidInput, ServerMisconfigured
from swapgate.models.enums import StreamEvent

logger = logging.getLogger(__name__)


def format_sse(event: str, data: Any) -> str:
    return f"event: {event}\ndata: {json.dumps(data, separators=(',', ':'))}\n\n"


class PriceStreamRelay:
    """Turns periodic token-price polls into a push stream.

    Every connection gets its own generator: a ``ready`` event, then one
    poll cycle per interval emitting ``price`` for each address that
    answered 2xx and a closing ``heartbeat``. A failed fetch emits nothing
    for that address. Polling stops once the client is gone.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        api_key: str,
        interval: float = 10.0,
        max_addresses: int = 20,
        fetch_timeout: float = 12.0,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.http_client = http_client
        self.base_url = base_url
        self.api_key = api_key
        self.interval = interval
        self.max_addresses = max_addresses
        self.fetch_timeout = fetch_timeout
        self._clock = clock
        self._sleep = sleep

    def parse_addresses(self, raw: str | None) -> list[str]:
        if not self.api_key:
            raise ServerMisconfigured("Missing price API key")
        addresses = [a.strip() for a in (raw or "").split(",") if a.strip()]
        if not addresses:
            raise InvalidInput("No addresses requested", {"field": "addresses"})
        if len(addresses) > self.max_addresses:
            raise InvalidInput(
                f"At most {self.max_addresses} addresses per stream",
                {"field": "addresses", "count": len(addresses)},
            )
        return addresses

    async def fetch_price(self, chain: str, address: str) -> Any | None:
        try:
            response = await self.http_client.get(
                f"{self.base_url}/erc20/{address}/price",
                params={"chain": chain},
                headers={"X-API-Key": self.api_key, "Accept": "application/json"},
                timeout=self.fetch_timeout,
            )
            if response.is_success:
                return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("Price fetch for %s failed: %s", address, exc)
        return None

    async def stream(
        self,
        chain: str,
        addresses: list[str],
        is_disconnected: Callable[[], Awaitable[bool]],
    ) -> AsyncIterator[str]:
        yield format_sse(StreamEvent.READY, {"ok": True, "addresses": addresses})
        logger.info("Price stream opened (chain=%s, addresses=%d)", chain, len(addresses))
        try:
            while not await is_disconnected():
                for address in addresses:
                    if await is_disconnected():
                        return
                    data = await self.fetch_price(chain, address)
                    if data is not None:
                        yield format_sse(StreamEvent.PRICE, {"address": address, "data": data})
                yield format_sse(StreamEvent.HEARTBEAT, {"t": int(self._clock() * 1000)})
                await self._sleep(self.interval)
        finally:
            logger.info("Price stream closed (chain=%s)", chain)
