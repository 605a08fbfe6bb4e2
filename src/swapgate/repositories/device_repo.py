"""Device registration repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from swapgate.db.models.device import DeviceRow
from swapgate.repositories.base import BaseRepository


class DeviceRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, DeviceRow)

    async def latest_for_wallet(self, wallet_address: str) -> DeviceRow | None:
        """Most recent registration for a wallet; later registrations win."""
        stmt = (
            select(DeviceRow)
            .where(DeviceRow.wallet_address == wallet_address)
            .order_by(DeviceRow.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
