"""Background loops: cache sweep and ledger maintenance."""

import asyncio
import logging

from swapgate.services.maintenance import run_maintenance

logger = logging.getLogger(__name__)


async def run_cache_sweeper(app, interval: float) -> None:
    """Periodically reclaim expired proxy-cache entries."""
    logger.info("Cache sweeper started (interval=%ss)", interval)

    while True:
        try:
            await asyncio.sleep(interval)
            removed = app.state.cache.sweep()
            if removed:
                logger.debug("Cache sweeper removed %d entries", removed)
        except asyncio.CancelledError:
            logger.info("Cache sweeper stopped")
            break
        except Exception as exc:
            logger.exception("Cache sweeper error: %s", exc)


async def run_maintenance_loop(app, interval: float) -> None:
    """Periodically purge retained records and expire stale pending sessions."""
    logger.info("Maintenance scheduler started (interval=%ss)", interval)

    while True:
        try:
            await asyncio.sleep(interval)
            await run_maintenance(app.state.ledger, app.state.analytics)
        except asyncio.CancelledError:
            logger.info("Maintenance scheduler stopped")
            break
        except Exception as exc:
            logger.exception("Maintenance error: %s", exc)
            # Continue running despite errors
