"""
Shared utility functions for the engine modules.
"""

import asyncio
import time
from typing import Callable

from loguru import logger


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


# =============================================================================
# Async Task Exception Handling
# =============================================================================

def log_abandoned_task(label: str) -> Callable[[asyncio.Task], None]:
    """
    Build a done-callback for an operation task the executor gave up on.

    The callback retrieves the task's outcome so asyncio never reports an
    unretrieved exception, and logs that the outcome was discarded:

        task.add_done_callback(log_abandoned_task("webrtc#1"))

    Args:
        label: Human-readable name of the abandoned attempt.
    """

    def callback(task: asyncio.Task) -> None:
        try:
            exc = task.exception()
        except asyncio.CancelledError:
            # Task was cancelled, this is not an error
            logger.debug(f"Abandoned attempt {label} was cancelled")
            return
        if exc is not None:
            logger.debug(f"Discarded late failure from abandoned attempt {label}: {exc!r}")
        else:
            logger.debug(f"Discarded late result from abandoned attempt {label}")

    return callback
