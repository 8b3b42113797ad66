"""Periodic fire-and-forget backups.

A failed cycle is not retried; the next cycle covers it.
"""

import asyncio
import logging
from typing import Optional

from .orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)

# Five minutes
DEFAULT_SCHEDULE_INTERVAL = 300.0


async def run_periodic(
    orchestrator: SyncOrchestrator,
    interval: float = DEFAULT_SCHEDULE_INTERVAL,
    iterations: Optional[int] = None,
) -> int:
    """Call ``orchestrator.fire_and_forget()`` every ``interval`` seconds.

    Args:
        orchestrator: Orchestrator to trigger
        interval: Seconds between cycles
        iterations: Number of cycles to run (None runs until cancelled)

    Returns:
        Number of cycles run
    """
    if interval <= 0:
        raise ValueError("interval must be positive")

    cycles = 0
    while iterations is None or cycles < iterations:
        if cycles:
            await asyncio.sleep(interval)
        cycles += 1
        logger.debug(f"[cron] Cycle {cycles}")
        try:
            await orchestrator.fire_and_forget()
        except Exception as e:
            logger.error(f"[cron] Cycle {cycles} failed: {e}")
    return cycles
