"""Health check endpoints."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

router = APIRouter(tags=["Health"])

VERSION = "0.1.0"


@router.get("/healthz")
async def health_check(request: Request):
    """Return service health including a database probe."""
    settings = request.app.state.settings
    try:
        async with request.app.state.db_session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        return JSONResponse(
            status_code=500,
            content={"ok": False, "error": "db_unavailable", "detail": type(exc).__name__},
        )
    return {"ok": True, "env": settings.wert_env, "version": VERSION}


@router.get("/api/health/live")
async def liveness():
    """Liveness probe. Always 200 while the process is up."""
    return {"status": "alive"}
