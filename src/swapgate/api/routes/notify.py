"""Push-notification device registration."""

from fastapi import APIRouter

from swapgate.dependencies import Notifications, RequireAppAuth
from swapgate.models.device import RegisterDeviceRequest

router = APIRouter(prefix="/notify", tags=["Notifications"])


@router.post("/register", dependencies=[RequireAppAuth])
async def register_device(body: RegisterDeviceRequest, notifications: Notifications) -> dict:
    await notifications.register_device(body)
    return {"ok": True}
