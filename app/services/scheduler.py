"""
APScheduler Configuration

Manages the periodic session status sync that completes sessions whose
scheduled end time has passed.
"""
import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app import config
from app.api.dependencies import get_session_lifecycle

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()


async def sync_session_statuses():
    """
    Periodic job marking elapsed sessions as completed.

    Runs every SESSION_SYNC_INTERVAL_MINUTES. Logs how many sessions were
    completed and how many could not be reconciled.
    """
    logger.info("Starting session status sync")

    try:
        lifecycle = get_session_lifecycle()
        summary = await lifecycle.reconcile_expired_sessions()

        logger.info(
            f"Session status sync complete: {summary.updated} sessions completed, "
            f"{summary.failed} failed"
        )

        if summary.failed > 0:
            logger.warning(f"Session status sync could not reconcile {summary.failed} sessions")

    except Exception as e:
        logger.error(f"Failed to sync session statuses: {e}", exc_info=True)


def configure_scheduler():
    """
    Configure APScheduler with all scheduled jobs.

    Jobs:
        - Session status sync: every SESSION_SYNC_INTERVAL_MINUTES (default 15)
    """
    scheduler.add_job(
        sync_session_statuses,
        trigger=IntervalTrigger(minutes=config.SESSION_SYNC_INTERVAL_MINUTES),
        id='session_status_sync',
        name='Complete Elapsed Sessions',
        replace_existing=True,
        coalesce=True,  # Combine missed runs into single execution
        max_instances=1  # Only one instance at a time
    )

    logger.info(
        f"Scheduler configured with session status sync every {config.SESSION_SYNC_INTERVAL_MINUTES} minutes"
    )


def start_scheduler():
    """Start the APScheduler"""
    configure_scheduler()
    scheduler.start()
    logger.info("Scheduler started")


def stop_scheduler():
    """Stop the APScheduler"""
    if scheduler.running:
        scheduler.shutdown()
    logger.info("Scheduler stopped")
