"""Server-Sent Events price stream."""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from swapgate.dependencies import get_stream_relay
from swapgate.relay.stream import PriceStreamRelay

router = APIRouter(tags=["Stream"])


@router.get("/prices/stream")
async def stream_prices(
    request: Request,
    chain: str = Query("eth"),
    addresses: str = Query(""),
    relay: PriceStreamRelay = Depends(get_stream_relay),
):
    """Push ``ready``, then ``price``/``heartbeat`` events every poll interval."""
    requested = relay.parse_addresses(addresses)

    return StreamingResponse(
        relay.stream(chain, requested, request.is_disconnected),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache, no-transform",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
            "Connection": "keep-alive",
        },
    )
