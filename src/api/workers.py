import asyncio
import logging
import os

from api.dependencies import get_backend
from notifications.reminders import REMINDER_POLL_INTERVAL_S

logger = logging.getLogger(__name__)

# Config
RECURRENCE_SWEEP_INTERVAL_S = float(os.getenv("RECURRENCE_SWEEP_INTERVAL_S", "300"))


async def _reminder_worker() -> None:
    """Background worker that fires reminders whose time has come."""
    logger.info("Reminder worker started")

    while True:
        try:
            await asyncio.to_thread(get_backend().check_reminders)
        except Exception as e:
            logger.exception(f"Error in reminder worker: {e}")
        await asyncio.sleep(REMINDER_POLL_INTERVAL_S)


async def _recurrence_worker() -> None:
    """Periodically regenerate recurring tasks completed outside a command."""
    logger.info("Recurrence worker started")

    while True:
        await asyncio.sleep(RECURRENCE_SWEEP_INTERVAL_S)
        try:
            created = await asyncio.to_thread(get_backend().regenerate_recurring)
            if created > 0:
                logger.info(f"Regenerated {created} recurring task(s)")
        except Exception as e:
            logger.error(f"Error in recurrence worker: {e}")
