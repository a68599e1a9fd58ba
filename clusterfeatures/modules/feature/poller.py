"""Bounded, fixed-interval readiness polling."""

import asyncio
import logging
from typing import Awaitable, Callable

from .errors import DependencyNotReadyError

logger = logging.getLogger("clusterfeatures.poller")

# Bounds capability bring-up without busy polling
DEFAULT_INTERVAL = 2.0
DEFAULT_TIMEOUT = 300.0

ReadinessCheck = Callable[[], Awaitable[bool]]


class PollTimeoutError(DependencyNotReadyError):
    """Readiness check did not report ready before the timeout."""

    def __init__(self, timeout: float, what: str = "condition"):
        self.timeout = timeout
        super().__init__(f"timed out after {timeout}s waiting for {what}")


async def poll_until_ready(
    check: ReadinessCheck,
    interval: float = DEFAULT_INTERVAL,
    timeout: float = DEFAULT_TIMEOUT,
    what: str = "condition",
) -> None:
    """
    Invoke check every interval seconds until it reports ready.

    The first check runs one interval after the call. Cancelling the calling
    task interrupts the wait immediately.

    Args:
        check: Coroutine function returning True once ready
        interval: Seconds between checks
        timeout: Upper bound on the total wait
        what: Description used in log and error messages

    Raises:
        PollTimeoutError: If check never reported ready within timeout
        Exception: Whatever check raised, unchanged
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    attempts = 0

    while True:
        remaining = deadline - loop.time()
        if remaining <= 0:
            logger.warning(f"Gave up waiting for {what} after {attempts} check(s)")
            raise PollTimeoutError(timeout, what)

        await asyncio.sleep(min(interval, remaining))
        attempts += 1
        if await check():
            logger.debug(f"{what} ready after {attempts} check(s)")
            return
        logger.debug(f"Still waiting for {what} (check {attempts})")
