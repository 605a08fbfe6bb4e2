"""On-ramp session endpoints: create, list, detail, provider webhook."""

from fastapi import APIRouter, Header, Query, Request

from swapgate.dependencies import Ledger, RequireAppAuth
from swapgate.models.session import CreateSessionRequest

router = APIRouter(prefix="/wert", tags=["Sessions"])


@router.post("/create-session", dependencies=[RequireAppAuth])
async def create_session(
    body: CreateSessionRequest,
    ledger: Ledger,
    x_idempotency_key: str | None = Header(None),
) -> dict:
    """Create an on-ramp session; replays with the same idempotency key return the stored id."""
    result = await ledger.create_session(body, body.idempotency_key or x_idempotency_key)
    return result.model_dump(by_alias=True)


@router.get("/sessions")
async def list_sessions(
    ledger: Ledger,
    wallet: str = Query(""),
    limit: int = Query(50),
    cursor: int | None = Query(None, description="created_at (epoch ms) upper bound, exclusive"),
) -> dict:
    page = await ledger.list_sessions(wallet, limit, cursor)
    return page.model_dump(mode="json", by_alias=True)


@router.get("/sessions/{session_id}")
async def get_session(session_id: str, ledger: Ledger) -> dict:
    detail = await ledger.get_session(session_id)
    return detail.model_dump(mode="json")


@router.post("/webhook")
async def receive_webhook(request: Request, ledger: Ledger) -> dict:
    """Provider webhook. Always acknowledged once recorded; status applied when known."""
    signature = request.headers.get("x-signature") or request.headers.get("x-wert-signature")
    raw_body = await request.body()
    ack = await ledger.record_webhook(raw_body, signature)
    return ack.model_dump()
