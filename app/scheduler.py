"""
Scheduler Module

Background job scheduler for Tekmetric token upkeep.
Uses APScheduler to re-exchange OAuth credentials before the cached
token expires, so proxy requests rarely pay for a token round trip.
"""

import os
import logging
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.services.tm_client import TekmetricClient, get_tm_client

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Configuration from environment
TOKEN_REFRESH_ENABLED = os.getenv("TOKEN_REFRESH_ENABLED", "true").lower() == "true"
TOKEN_REFRESH_INTERVAL_MINUTES = int(os.getenv("TOKEN_REFRESH_INTERVAL_MINUTES", "50"))

# Create scheduler
scheduler = AsyncIOScheduler()


async def scheduled_token_refresh(tm: Optional[TekmetricClient] = None) -> bool:
    """Refresh the Tekmetric access token; failures are logged, never raised"""
    tm = tm or get_tm_client()
    if not tm.is_configured():
        logger.info("[Scheduler] Tekmetric not configured, skipping token refresh")
        return False

    try:
        await tm.get_access_token(force_refresh=True)
        logger.info("[Scheduler] Token refresh complete")
        return True
    except Exception as e:
        logger.error(f"[Scheduler] Token refresh failed: {e}")
        return False


def start_scheduler(tm: Optional[TekmetricClient] = None):
    """Start the background scheduler"""
    if not TOKEN_REFRESH_ENABLED:
        logger.info("[Scheduler] Token refresh disabled via TOKEN_REFRESH_ENABLED env var")
        return

    tm = tm or get_tm_client()
    logger.info(f"[Scheduler] Starting scheduler with token refresh every {TOKEN_REFRESH_INTERVAL_MINUTES} minutes")

    scheduler.add_job(
        scheduled_token_refresh,
        IntervalTrigger(minutes=TOKEN_REFRESH_INTERVAL_MINUTES),
        args=[tm],
        id="token_refresh",
        name="Tekmetric Token Refresh",
        replace_existing=True
    )

    scheduler.start()
    logger.info("[Scheduler] Scheduler started successfully")


def stop_scheduler():
    """Stop the scheduler"""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("[Scheduler] Scheduler stopped")
