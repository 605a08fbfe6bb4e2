"""JSON-RPC relay endpoint."""

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from swapgate.dependencies import RequireAppAuth, get_rpc_relay
from swapgate.models.rpc import RpcRequest
from swapgate.relay.rpc import RpcRelay

router = APIRouter(tags=["RPC"])


@router.post("/rpc", dependencies=[RequireAppAuth])
async def relay_rpc(body: RpcRequest, relay: RpcRelay = Depends(get_rpc_relay)) -> Response:
    relayed = await relay.relay(body.method, body.params, body.id)
    return Response(
        content=relayed.content,
        status_code=relayed.status_code,
        media_type=relayed.media_type or "application/json",
    )
