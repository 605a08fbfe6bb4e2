"""Admin endpoints behind HTTP Basic auth."""

from fastapi import APIRouter

from swapgate.dependencies import Analytics, Ledger, RequireAdmin
from swapgate.services.maintenance import run_maintenance

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[RequireAdmin])


@router.get("/analytics/summary")
async def analytics_summary(analytics: Analytics) -> dict:
    summary = await analytics.summary()
    return summary.model_dump()


@router.post("/cron/run")
async def run_cron(ledger: Ledger, analytics: Analytics) -> dict:
    """Purge expired audit/analytics rows and expire stale pending sessions."""
    report = await run_maintenance(ledger, analytics)
    return report.model_dump()
