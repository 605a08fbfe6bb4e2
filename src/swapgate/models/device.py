"""Pydantic models for push-notification device registration."""

from pydantic import BaseModel


class RegisterDeviceRequest(BaseModel):
    wallet_address: str | None = None
    external_user_id: str | int | None = None
    platform: str | None = None
