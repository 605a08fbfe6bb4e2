"""Token registry and client feature flags."""

from fastapi import APIRouter, Depends

from swapgate.dependencies import AppSettings, get_token_registry
from swapgate.integrations.token_registry import TokenRegistry

router = APIRouter(tags=["Catalog"])


@router.get("/tokens")
async def list_tokens(registry: TokenRegistry = Depends(get_token_registry)):
    return await registry.get()


@router.get("/config")
async def feature_config(settings: AppSettings) -> dict:
    return {
        "env": settings.wert_env,
        "features": {
            "sse_prices": True,
            "rpc_private_gateway": len(settings.private_rpc_urls) > 0,
            "analytics": True,
            "notifications": settings.notifications_enabled,
        },
    }
