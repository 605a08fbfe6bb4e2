"""Append-only audit trail of provider webhook deliveries."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from swapgate.db.base import Base, utcnow
from swapgate.db.models.session import SESSION_ID_MAX

EVENT_TYPE_MAX = 100


class WebhookRecordRow(Base):
    __tablename__ = "webhook_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str | None] = mapped_column(String(SESSION_ID_MAX), nullable=True, index=True)
    event_type: Mapped[str] = mapped_column(String(EVENT_TYPE_MAX), nullable=False)
    payload: Mapped[dict | list | None] = mapped_column(JSON, nullable=True)
    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True
    )
