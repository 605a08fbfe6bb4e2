"""Webhook audit-trail repository."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from swapgate.db.models.webhook import WebhookRecordRow
from swapgate.repositories.base import BaseRepository


class WebhookRecordRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, WebhookRecordRow)

    async def list_recent(self, session_id: str, limit: int = 20) -> list[WebhookRecordRow]:
        stmt = (
            select(WebhookRecordRow)
            .where(WebhookRecordRow.session_id == session_id)
            .order_by(WebhookRecordRow.received_at.desc(), WebhookRecordRow.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def purge_before(self, cutoff: datetime) -> int:
        return await self.delete_older_than("received_at", cutoff)
