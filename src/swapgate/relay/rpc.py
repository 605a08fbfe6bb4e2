"""JSON-RPC relay to a pool of private nodes."""

from __future__ import annotations

import logging
import random
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

import httpx

from swapgate.errors.exceptions import MethodNotAllowed, ServerMisconfigured, UpstreamError
from swapgate.relay.proxy import RelayedResponse

logger = logging.getLogger(__name__)

# State reads and raw transaction submission only
ALLOWED_RPC_METHODS = frozenset(
    {
        "eth_call",
        "eth_estimateGas",
        "eth_getBalance",
        "eth_getTransactionCount",
        "eth_gasPrice",
        "eth_feeHistory",
        "eth_chainId",
        "eth_blockNumber",
        "eth_getBlockByNumber",
        "eth_sendRawTransaction",
    }
)


class NodeSelector(ABC):
    """Chooses the upstream node for one request."""

    @abstractmethod
    def select(self) -> str | None:
        """Return a node URL, or None when the pool is empty."""
        ...


class RandomNodeSelector(NodeSelector):
    """Uniform random choice per request. No affinity, no health tracking."""

    def __init__(self, urls: Sequence[str], rng: random.Random | None = None):
        self.urls = list(urls)
        self._rng = rng or random.Random()

    def select(self) -> str | None:
        if not self.urls:
            return None
        return self._rng.choice(self.urls)


class RpcRelay:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        selector: NodeSelector,
        timeout: float = 15.0,
        allowed_methods: frozenset[str] = ALLOWED_RPC_METHODS,
    ):
        self.http_client = http_client
        self.selector = selector
        self.timeout = timeout
        self.allowed_methods = allowed_methods

    async def relay(self, method: str | None, params: Any = None, id: Any = None) -> RelayedResponse:
        """Forward one JSON-RPC call.

        The method is checked before any node is contacted. A non-200 node
        answer is returned as 502 with the node's body intact.
        """
        if not method or str(method) not in self.allowed_methods:
            raise MethodNotAllowed(method)
        node_url = self.selector.select()
        if not node_url:
            raise ServerMisconfigured("No private RPC nodes configured")

        envelope = {
            "jsonrpc": "2.0",
            "id": id if id is not None else 1,
            "method": method,
            "params": params if isinstance(params, list) else [],
        }
        try:
            response = await self.http_client.post(
                node_url,
                json=envelope,
                headers={"Content-Type": "application/json", "Accept": "application/json"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            logger.warning("RPC node %s unreachable: %s", node_url, exc)
            raise UpstreamError("RPC node unreachable") from exc

        if response.status_code != 200:
            logger.info("RPC node %s answered %s for %s", node_url, response.status_code, method)
            return RelayedResponse.from_httpx(response, status_code=502)
        return RelayedResponse.from_httpx(response)
