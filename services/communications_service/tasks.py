"""
Background tasks for in-app notifications.

Handles:
- Delivering scheduled notifications that have come due
- Deleting notifications past their expiry
"""

from libs.common.logging import get_logger
from libs.db.config import AsyncSessionLocal
from services.communications_service.services.notifications import (
    cleanup_expired_notifications,
    process_scheduled_notifications,
)

logger = get_logger(__name__)


async def deliver_scheduled_notifications() -> int:
    async with AsyncSessionLocal() as db:
        delivered = await process_scheduled_notifications(db)

    if delivered:
        logger.info("Delivered %s scheduled notification(s)", delivered)
    return delivered


async def purge_expired_notifications() -> int:
    async with AsyncSessionLocal() as db:
        removed = await cleanup_expired_notifications(db)

    logger.info("Removed %s expired notification(s)", removed)
    return removed
