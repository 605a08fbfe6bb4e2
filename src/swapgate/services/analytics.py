"""Write-only analytics sink."""

from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from swapgate.db.base import utcnow
from swapgate.errors.exceptions import InvalidInput
from swapgate.models.analytics import AnalyticsSummary, EventCount, TrackEventRequest
from swapgate.repositories.analytics_repo import AnalyticsEventRepository


class AnalyticsService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        retention: timedelta = timedelta(days=60),
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self.retention = retention
        self._clock = clock

    async def track(self, event: TrackEventRequest) -> None:
        if not event.event_name or not isinstance(event.event_name, str):
            raise InvalidInput("Invalid event name", {"field": "event_name"})
        async with self._session_factory() as db:
            await AnalyticsEventRepository(db).create(
                event_name=event.event_name,
                session_id=event.session_id,
                wallet_address=event.wallet_address,
                props=event.props,
                created_at=self._clock(),
            )
            await db.commit()

    async def summary(self) -> AnalyticsSummary:
        async with self._session_factory() as db:
            counts = await AnalyticsEventRepository(db).count_by_name()
        return AnalyticsSummary(
            events=[EventCount(event_name=name, count=cnt) for name, cnt in counts]
        )

    async def purge(self, now: datetime | None = None) -> int:
        cutoff = (now or self._clock()) - self.retention
        async with self._session_factory() as db:
            deleted = await AnalyticsEventRepository(db).purge_before(cutoff)
            await db.commit()
        return deleted
