"""On-ramp session repository."""

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from swapgate.db.base import utcnow
from swapgate.db.models.session import OnrampSessionRow
from swapgate.models.enums import SessionStatus
from swapgate.repositories.base import BaseRepository


class SessionRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, OnrampSessionRow)

    async def get(self, session_id: str) -> OnrampSessionRow | None:
        return await self.get_by_field("session_id", session_id)

    async def get_by_idempotency_key(self, key: str) -> OnrampSessionRow | None:
        return await self.get_by_field("idempotency_key", key)

    async def insert_or_get(self, **kwargs) -> tuple[OnrampSessionRow, bool]:
        """Insert a session row; on a unique conflict return the stored row.

        Commits on success. On conflict the transaction is rolled back and
        the existing row (matched by idempotency key first, then session id)
        is returned with ``False``.
        """
        row = OnrampSessionRow(**kwargs)
        self.session.add(row)
        try:
            await self.session.commit()
            return row, True
        except IntegrityError as exc:
            await self.session.rollback()
            conflict = exc

        existing = None
        if kwargs.get("idempotency_key"):
            existing = await self.get_by_idempotency_key(kwargs["idempotency_key"])
        if existing is None:
            existing = await self.get(kwargs["session_id"])
        if existing is None:
            # The conflicting row vanished between insert and read
            raise conflict
        return existing, False

    async def set_status(
        self, session_id: str, status: str, unless_in: Iterable[str] = ()
    ) -> int:
        """Keyed status update. Rows currently in ``unless_in`` are left untouched."""
        stmt = (
            update(OnrampSessionRow)
            .where(OnrampSessionRow.session_id == session_id)
            .values(status=status, updated_at=utcnow())
        )
        blocked = [str(s) for s in unless_in]
        if blocked:
            stmt = stmt.where(OnrampSessionRow.status.not_in(blocked))
        result = await self.session.execute(stmt)
        # rowcount is reported by aiosqlite and asyncpg for UPDATE/DELETE, not SELECT
        return result.rowcount

    async def list_by_wallet(
        self, wallet_address: str, limit: int, before: datetime | None = None
    ) -> list[OnrampSessionRow]:
        """Newest-first page of a wallet's sessions, optionally strictly older than ``before``."""
        stmt = select(OnrampSessionRow).where(
            OnrampSessionRow.wallet_address == wallet_address
        )
        if before is not None:
            stmt = stmt.where(OnrampSessionRow.created_at < before)
        stmt = stmt.order_by(
            OnrampSessionRow.created_at.desc(), OnrampSessionRow.id.desc()
        ).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def expire_pending(self, created_before: datetime) -> int:
        """Move every still-``created`` session older than the cutoff to ``expired``."""
        stmt = (
            update(OnrampSessionRow)
            .where(
                OnrampSessionRow.status == SessionStatus.CREATED.value,
                OnrampSessionRow.created_at < created_before,
            )
            .values(status=SessionStatus.EXPIRED.value, updated_at=utcnow())
        )
        result = await self.session.execute(stmt)
        return result.rowcount
