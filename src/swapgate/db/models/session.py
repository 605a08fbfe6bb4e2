"""On-ramp session table."""

from sqlalchemy import JSON, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from swapgate.db.base import Base, TimestampMixin

# Column widths; request models validate against the same limits
SESSION_ID_MAX = 200
IDEMPOTENCY_KEY_MAX = 200
CURRENCY_MAX = 20
COMMODITY_MAX = 50
NETWORK_MAX = 50
STATUS_MAX = 50


class OnrampSessionRow(Base, TimestampMixin):
    __tablename__ = "onramp_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(SESSION_ID_MAX), nullable=False, unique=True)
    idempotency_key: Mapped[str | None] = mapped_column(String(IDEMPOTENCY_KEY_MAX), nullable=True, unique=True)
    wallet_address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    env: Mapped[str] = mapped_column(String(20), nullable=False)
    commodity: Mapped[str] = mapped_column(String(COMMODITY_MAX), nullable=False)
    currency: Mapped[str] = mapped_column(String(CURRENCY_MAX), nullable=False)
    currency_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    network: Mapped[str] = mapped_column(String(NETWORK_MAX), nullable=False)
    status: Mapped[str] = mapped_column(String(STATUS_MAX), nullable=False, default="created", index=True)
    meta: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
