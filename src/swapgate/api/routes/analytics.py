"""Analytics tracking endpoint."""

from fastapi import APIRouter

from swapgate.dependencies import Analytics, RequireAppAuth
from swapgate.models.analytics import TrackEventRequest

router = APIRouter(prefix="/analytics", tags=["Analytics"])


@router.post("/track", dependencies=[RequireAppAuth])
async def track_event(body: TrackEventRequest, analytics: Analytics) -> dict:
    await analytics.track(body)
    return {"ok": True}
