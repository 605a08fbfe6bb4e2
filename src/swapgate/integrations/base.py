"""Abstract contracts for the third-party services the gateway calls."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class SessionProvider(ABC):
    """Mints on-ramp session identifiers."""

    provider_type: str = "unknown"

    @abstractmethod
    async def create_session(self, payload: dict[str, Any]) -> str:
        """Create a session upstream and return its identifier.

        Raises:
            UpstreamError: upstream unreachable, non-2xx, or no identifier.
            ServerMisconfigured: the provider URL or credential is unset.
        """
        ...


class PushNotifier(ABC):
    """Delivers push notifications to an external user id."""

    notifier_type: str = "unknown"

    @property
    def enabled(self) -> bool:
        return True

    @abstractmethod
    async def notify(self, external_user_id: str, title: str, body: str) -> bool:
        """Send a notification. Never raises; returns True on delivery."""
        ...
