"""Wert partner API client for on-ramp session creation."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from swapgate.errors.exceptions import ServerMisconfigured, UpstreamError
from swapgate.integrations.base import SessionProvider
from swapgate.models.enums import WertAuthScheme

logger = logging.getLogger(__name__)

# Response keys the provider has used for the minted identifier
_SESSION_ID_KEYS = ("sessionId", "session_id", "id")


class WertSessionProvider(SessionProvider):
    """Creates sessions through the Wert partner ``create-session`` endpoint.

    The client payload is forwarded as-is; ``partner_id`` is filled in from
    configuration when the client did not send one.
    """

    provider_type: str = "wert"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        create_session_url: str,
        api_key: str,
        partner_id: str = "",
        auth_scheme: str = WertAuthScheme.BEARER,
        timeout: float = 15.0,
    ):
        self.http_client = http_client
        self.create_session_url = create_session_url
        self.api_key = api_key
        self.partner_id = partner_id
        self.auth_scheme = auth_scheme.lower()
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.auth_scheme == WertAuthScheme.X_API_KEY:
            headers["X-API-KEY"] = self.api_key
        else:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def create_session(self, payload: dict[str, Any]) -> str:
        if not self.create_session_url:
            raise ServerMisconfigured("Missing create-session URL")
        if not self.api_key:
            raise ServerMisconfigured("Missing provider API key")

        body = dict(payload)
        if not body.get("partner_id") and self.partner_id:
            body["partner_id"] = self.partner_id

        try:
            response = await self.http_client.post(
                self.create_session_url,
                json=body,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            logger.warning("Wert create-session request failed: %s", exc)
            raise UpstreamError("Session provider unreachable") from exc

        if not response.is_success:
            raise UpstreamError(
                "Session provider rejected the request",
                details={"status": response.status_code, "body": _safe_json(response)},
            )

        data = _safe_json(response)
        session_id = None
        if isinstance(data, dict):
            session_id = next((data[k] for k in _SESSION_ID_KEYS if data.get(k)), None)
        if not session_id:
            raise UpstreamError(
                "Session provider returned no session id",
                details={"body": data},
            )
        return str(session_id)


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
