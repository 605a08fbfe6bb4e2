"""Pydantic models for on-ramp sessions and webhook records."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from swapgate.db.models.session import (
    COMMODITY_MAX,
    CURRENCY_MAX,
    IDEMPOTENCY_KEY_MAX,
    NETWORK_MAX,
)


class CreateSessionRequest(BaseModel):
    """Client request to open an on-ramp session.

    The client body is kept as received and forwarded to the provider
    unchanged; parsed fields only feed validation and storage.
    Required fields are optional here so the ledger can report them as
    ``INVALID_INPUT`` rather than a schema error.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    flow_type: str | None = None
    wallet_address: str | None = None
    currency: str | None = Field(None, max_length=CURRENCY_MAX)
    commodity: str | None = Field(None, max_length=COMMODITY_MAX)
    network: str | None = Field(None, max_length=NETWORK_MAX)
    currency_amount: float | None = None
    partner_id: str | None = None
    idempotency_key: str | None = Field(None, alias="idempotencyKey", max_length=IDEMPOTENCY_KEY_MAX)

    _raw: dict[str, Any] = PrivateAttr(default_factory=dict)

    @model_validator(mode="wrap")
    @classmethod
    def _keep_raw_body(cls, data: Any, handler):
        model = handler(data)
        if isinstance(data, dict):
            model._raw = dict(data)
        return model

    def provider_payload(self) -> dict[str, Any]:
        """Body sent to the provider: what the client sent, minus the idempotency key."""
        if not self._raw:
            return self.model_dump(exclude_none=True, exclude={"idempotency_key"})
        return {k: v for k, v in self._raw.items() if k not in ("idempotencyKey", "idempotency_key")}


class CreateSessionResponse(BaseModel):
    session_id: str = Field(..., serialization_alias="sessionId")
    created: bool = True


class SessionModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    session_id: str
    wallet_address: str
    env: str
    commodity: str
    currency: str
    currency_amount: float | None = None
    network: str
    status: str
    metadata: dict[str, Any] | None = Field(None, validation_alias="meta")
    created_at: datetime
    updated_at: datetime


class SessionPage(BaseModel):
    sessions: list[SessionModel]
    next_cursor: int | None = Field(None, serialization_alias="nextCursor")


class WebhookRecordModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    event_type: str
    payload: dict[str, Any] | list[Any] | None = None
    received_at: datetime


class SessionDetail(BaseModel):
    session: SessionModel
    webhooks: list[WebhookRecordModel]


class WebhookAck(BaseModel):
    ok: bool = True
    session_id: str | None = None
    event_type: str
    applied: bool = False
