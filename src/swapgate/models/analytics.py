"""Pydantic models for analytics tracking."""

from typing import Any

from pydantic import BaseModel


class TrackEventRequest(BaseModel):
    event_name: Any = None
    session_id: str | None = None
    wallet_address: str | None = None
    props: dict[str, Any] | None = None


class EventCount(BaseModel):
    event_name: str
    count: int


class AnalyticsSummary(BaseModel):
    events: list[EventCount]
