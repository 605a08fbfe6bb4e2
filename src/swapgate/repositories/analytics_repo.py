"""Analytics event repository."""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from swapgate.db.models.analytics import AnalyticsEventRow
from swapgate.repositories.base import BaseRepository


class AnalyticsEventRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, AnalyticsEventRow)

    async def count_by_name(self, limit: int = 100) -> list[tuple[str, int]]:
        count = func.count(AnalyticsEventRow.id).label("cnt")
        stmt = (
            select(AnalyticsEventRow.event_name, count)
            .group_by(AnalyticsEventRow.event_name)
            .order_by(count.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [(name, cnt) for name, cnt in result.all()]

    async def purge_before(self, cutoff: datetime) -> int:
        return await self.delete_older_than("created_at", cutoff)
