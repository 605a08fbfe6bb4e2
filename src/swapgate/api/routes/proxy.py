"""Cached pass-through routes for the aggregator and price APIs."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from swapgate.dependencies import get_proxy_relay, get_upstream_targets
from swapgate.relay.proxy import ProxyRelay, UpstreamTarget

router = APIRouter(tags=["Proxy"])


async def _forward(request: Request, relay: ProxyRelay, target: UpstreamTarget, path: str) -> Response:
    relayed = await relay.forward(
        target,
        f"/{path}",
        request.query_params.multi_items(),
    )
    return Response(
        content=relayed.content,
        status_code=relayed.status_code,
        media_type=relayed.media_type,
    )


@router.get("/oneinch/{path:path}")
async def oneinch_proxy(
    path: str,
    request: Request,
    relay: ProxyRelay = Depends(get_proxy_relay),
    targets: dict[str, UpstreamTarget] = Depends(get_upstream_targets),
) -> Response:
    return await _forward(request, relay, targets["oneinch"], path)


@router.get("/moralis/{path:path}")
async def moralis_proxy(
    path: str,
    request: Request,
    relay: ProxyRelay = Depends(get_proxy_relay),
    targets: dict[str, UpstreamTarget] = Depends(get_upstream_targets),
) -> Response:
    return await _forward(request, relay, targets["moralis"], path)
