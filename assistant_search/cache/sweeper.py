"""Periodic background sweeps for in-process caches."""

import asyncio
from collections.abc import Callable

from assistant_search.logging_config import get_logger

logger = get_logger(__name__)


class PeriodicSweeper:
    """Runs a synchronous sweep callable on a fixed interval.

    The sweep runs between awaits, so it never interleaves with another
    coroutine mutating the same cache.
    """

    def __init__(
        self,
        name: str,
        sweep: Callable[[], int],
        interval: float,
    ) -> None:
        """Initialize the sweeper.

        Args:
            name: Cache name used in log messages.
            sweep: Callable that removes expired entries and returns the count.
            interval: Seconds between sweeps.
        """
        self._name = name
        self._sweep = sweep
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        """Whether the background task is active."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the background task. Calling it twice is a no-op."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=f"{self._name}-sweeper")
        logger.debug(
            f"Started {self._name} sweeper",
            extra={"interval_seconds": self._interval},
        )

    async def shutdown(self) -> None:
        """Cancel the background task and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.debug(f"Stopped {self._name} sweeper")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                removed = self._sweep()
            except Exception as e:
                logger.error(f"{self._name} sweep failed: {e}")
                continue
            if removed:
                logger.info(
                    f"Swept {removed} expired {self._name} entries",
                    extra={"cache": self._name, "removed": removed},
                )
