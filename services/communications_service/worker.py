"""ARQ worker for communications service background tasks.

Schedules notification maintenance via ARQ cron jobs backed by Redis.
Run with: arq services.communications_service.worker.WorkerSettings
"""

from arq import cron
from libs.common.arq_config import get_redis_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)


# ── Wrapper functions (ARQ requires top-level async callables) ──


async def task_deliver_scheduled_notifications(ctx: dict):
    """Deliver scheduled notifications whose time has come."""
    from services.communications_service.tasks import deliver_scheduled_notifications

    logger.info("Running: deliver_scheduled_notifications")
    return await deliver_scheduled_notifications()


async def task_purge_expired_notifications(ctx: dict):
    """Delete notifications past their expiry."""
    from services.communications_service.tasks import purge_expired_notifications

    logger.info("Running: purge_expired_notifications")
    return await purge_expired_notifications()


# ── Worker configuration ──


class WorkerSettings:
    """ARQ worker settings with cron job schedules."""

    redis_settings = get_redis_settings()

    # Register all task functions so ARQ can discover them
    functions = [
        task_deliver_scheduled_notifications,
        task_purge_expired_notifications,
    ]

    cron_jobs = [
        # Scheduled notifications every 5 minutes
        cron(
            task_deliver_scheduled_notifications,
            minute={0, 5, 10, 15, 20, 25, 30, 35, 40, 45, 50, 55},
            run_at_startup=False,
        ),
        # Expired notification cleanup (daily, 03:00 UTC / 07:00 GST)
        cron(
            task_purge_expired_notifications,
            hour=3,
            minute=0,
            run_at_startup=False,
        ),
    ]
