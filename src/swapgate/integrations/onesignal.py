"""OneSignal push-notification sink."""

from __future__ import annotations

import logging

import httpx

from swapgate.integrations.base import PushNotifier

logger = logging.getLogger(__name__)


class OneSignalNotifier(PushNotifier):
    """Pushes notifications to a OneSignal external user alias."""

    notifier_type: str = "onesignal"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        app_id: str,
        api_key: str,
        api_url: str = "https://api.onesignal.com/notifications",
        timeout: float = 10.0,
    ):
        self.http_client = http_client
        self.app_id = app_id
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.app_id and self.api_key)

    async def notify(self, external_user_id: str, title: str, body: str) -> bool:
        if not self.enabled:
            return False
        payload = {
            "app_id": self.app_id,
            "include_aliases": {"external_id": [str(external_user_id)]},
            "headings": {"en": str(title)},
            "contents": {"en": str(body)},
        }
        try:
            response = await self.http_client.post(
                self.api_url,
                json=payload,
                headers={
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                    "Authorization": f"Basic {self.api_key}",
                },
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            logger.warning("OneSignal delivery failed for %s: %s", external_user_id, exc)
            return False
        if not response.is_success:
            logger.warning(
                "OneSignal delivery returned %s for %s",
                response.status_code,
                external_user_id,
            )
            return False
        logger.info("Push notification delivered to %s", external_user_id)
        return True
