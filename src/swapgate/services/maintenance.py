"""Retention purge and pending-session expiry, run by the scheduler and the admin API."""

import logging
from datetime import datetime

from pydantic import BaseModel

from swapgate.services.analytics import AnalyticsService
from swapgate.services.ledger import SessionLedger

logger = logging.getLogger(__name__)


class MaintenanceReport(BaseModel):
    ok: bool = True
    deleted_analytics: int
    deleted_webhooks: int
    expired_sessions: int


async def run_maintenance(
    ledger: SessionLedger,
    analytics: AnalyticsService,
    now: datetime | None = None,
) -> MaintenanceReport:
    report = MaintenanceReport(
        deleted_analytics=await analytics.purge(now),
        deleted_webhooks=await ledger.purge_webhooks(now),
        expired_sessions=await ledger.expiry_sweep(now),
    )
    logger.info(
        "Maintenance run: analytics=%d webhooks=%d expired=%d",
        report.deleted_analytics,
        report.deleted_webhooks,
        report.expired_sessions,
    )
    return report
