# app/services/expiry_sweeper.py
"""
Optional storage-hygiene loop. Flips the stored status of seat posts and
announcements whose time has passed and broadcasts the change.

Read paths already filter on end time / expiry, so turning this off
(HYGIENE_INTERVAL_SECONDS=0) changes nothing a client can observe except
the status field of stale entities.
"""

import asyncio

from app.services.ingest import IngestService
from app.utils.logger import get_logger

logger = get_logger(__name__)


async def run_expiry_sweeper(ingest: IngestService, interval_seconds: float):
    logger.info(f"🧹 Expiry sweeper started (every {interval_seconds}s)")
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            ingest.reconcile_expired()
        except Exception as e:
            logger.error(f"Expiry sweep failed: {e}", exc_info=True)
