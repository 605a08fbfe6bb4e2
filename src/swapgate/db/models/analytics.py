"""Write-only analytics event sink."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from swapgate.db.base import Base, utcnow


class AnalyticsEventRow(Base):
    __tablename__ = "analytics_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    session_id: Mapped[str | None] = mapped_column(String(200), nullable=True)
    wallet_address: Mapped[str | None] = mapped_column(String(200), nullable=True)
    props: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True
    )
