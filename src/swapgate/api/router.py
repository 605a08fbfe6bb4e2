"""Master API router."""

from fastapi import APIRouter

from swapgate.api.routes import (
    admin,
    analytics,
    catalog,
    health,
    notify,
    proxy,
    rpc,
    sessions,
    stream,
)

api_router = APIRouter(prefix="/api")
api_router.include_router(sessions.router)
api_router.include_router(proxy.router)
api_router.include_router(stream.router)
api_router.include_router(rpc.router)
api_router.include_router(notify.router)
api_router.include_router(analytics.router)
api_router.include_router(catalog.router)

root_router = APIRouter()
root_router.include_router(health.router)
root_router.include_router(admin.router)
root_router.include_router(api_router)
