import asyncio
import logging
from datetime import datetime
from typing import Optional
from core.config import settings
from services.internship_service import sweep_expired
from services.session_service import purge_expired_sessions
from utils.timing import utcnow

logger = logging.getLogger(__name__)


async def run_expiry_sweep_once(now: Optional[datetime] = None) -> Optional[int]:
    """One sweep of listings past their deadline and of lapsed login sessions.

    Returns the number of listings removed, or None when that sweep failed.
    Failures are logged and never propagate.
    """
    now = now or utcnow()
    try:
        purged = await purge_expired_sessions(now)
        if purged:
            logger.info(f"Expiry sweep removed {purged} lapsed session(s)")
    except Exception as e:
        logger.error(f"Expired session purge failed: {e}")

    try:
        deleted = await sweep_expired(now)
    except Exception as e:
        logger.error(f"Expired internship sweep failed: {e}")
        return None
    if deleted:
        logger.info(f"Expired internship sweep removed {deleted} listing(s)")
    return deleted


async def expiry_sweep_loop(interval_seconds: int) -> None:
    while True:
        await run_expiry_sweep_once()
        await asyncio.sleep(interval_seconds)


def start_expiry_sweeper(interval_seconds: Optional[int] = None) -> asyncio.Task:
    interval = interval_seconds or settings.EXPIRY_SWEEP_INTERVAL_SECONDS
    logger.info(f"Starting expired internship sweeper every {interval}s")
    return asyncio.create_task(expiry_sweep_loop(interval), name="expiry-sweeper")


async def stop_expiry_sweeper(task: Optional[asyncio.Task]) -> None:
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
