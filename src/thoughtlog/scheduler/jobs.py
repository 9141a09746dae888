"""
APScheduler jobs for background retry of pending analyses.

Every `interval_minutes` (PENDING_SWEEP_INTERVAL_MINUTES when started from
__main__.py) the queue sweeps pending logs in order. A sweep that is
still running when the next one fires turns the new one into a no-op, so
the interval never causes overlapping retries.

The scheduler runs in the same event loop as everything else (wired in
__main__.py).
"""
import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler

logger = logging.getLogger(__name__)


def build_scheduler(queue, interval_minutes: int = 15) -> AsyncIOScheduler:
    """
    Create and configure the APScheduler.

    Args:
        queue: PendingQueue whose pending logs the job retries.
        interval_minutes: minutes between sweeps.

    Returns:
        Configured AsyncIOScheduler (not yet started).
    """
    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        _sweep_pending,
        trigger="interval",
        minutes=interval_minutes,
        id="pending_sweep",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        kwargs={"queue": queue},
    )

    return scheduler


async def _sweep_pending(queue) -> None:
    """Interval job: retry every eligible pending log. Never raises, so the scheduler stays alive."""
    try:
        if not queue.has_pending_items():
            return
        logger.info("Pending sweep starting at %s", datetime.now(timezone.utc).isoformat())
        result = await queue.retry_all_pending()
        logger.info(
            "Pending sweep finished: %d succeeded, %d failed, %d skipped",
            result.succeeded,
            result.failed,
            result.skipped,
        )
    except Exception as exc:
        logger.error("Pending sweep failed: %s", exc)
