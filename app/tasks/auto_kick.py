import asyncio
import logging
from typing import Optional

from app.config import settings
from app.services.auto_kick_service import AutoKickReconciler

logger = logging.getLogger(__name__)


async def run_auto_kick_loop(reconciler: AutoKickReconciler, poll_seconds: Optional[int] = None):
    """
    Main auto-kick loop that runs continuously.

    Wakes every poll_seconds, re-reads the config and runs a tick once
    check_interval seconds have passed since the last one.
    """
    poll_seconds = poll_seconds or settings.auto_kick_poll_seconds
    logger.info("Starting auto-kick background task...")

    loop = asyncio.get_running_loop()
    last_run: Optional[float] = None

    while True:
        try:
            config = await reconciler.config_store.get()
            current_time = loop.time()

            if config.enabled and (last_run is None or current_time - last_run >= config.check_interval):
                last_run = current_time
                await reconciler.tick()

            await asyncio.sleep(poll_seconds)

        except asyncio.CancelledError:
            logger.info("Auto-kick background task stopped")
            raise
        except Exception as e:
            logger.error(f"Error in auto-kick loop: {e}", exc_info=True)
            await asyncio.sleep(poll_seconds)
