"""Device registry and wallet-addressed push notifications."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from swapgate.errors.exceptions import InvalidInput
from swapgate.integrations.base import PushNotifier
from swapgate.models.device import RegisterDeviceRequest
from swapgate.repositories.device_repo import DeviceRepository
from swapgate.services.validation import is_wallet_address

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: PushNotifier,
    ):
        self._session_factory = session_factory
        self.notifier = notifier

    async def register_device(self, request: RegisterDeviceRequest) -> None:
        """Append a device registration. The latest one per wallet wins."""
        if not is_wallet_address(request.wallet_address):
            raise InvalidInput("Invalid wallet address", {"field": "wallet_address"})
        if request.external_user_id is None or str(request.external_user_id) == "":
            raise InvalidInput("Invalid external user id", {"field": "external_user_id"})

        async with self._session_factory() as db:
            await DeviceRepository(db).create(
                wallet_address=request.wallet_address,
                external_user_id=str(request.external_user_id),
                platform=request.platform,
            )
            await db.commit()

    async def notify_wallet(self, wallet_address: str, title: str, body: str) -> bool:
        """Push to the most recently registered device of a wallet.

        Returns False when no device is registered or delivery fails.
        """
        async with self._session_factory() as db:
            device = await DeviceRepository(db).latest_for_wallet(wallet_address)
        if device is None:
            logger.debug("No device registered for wallet %s", wallet_address)
            return False
        return await self.notifier.notify(device.external_user_id, title, body)
