"""Asyncio debouncer for coalescing rapid filter edits."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from config.settings_pydantic import settings

logger = logging.getLogger("wheelscreener")


class Debouncer:
    """Runs only the last scheduled callback once edits go quiet.

    Each ``schedule`` cancels the pending run and starts a new quiet period.
    Must be used from within a running event loop.
    """

    def __init__(self, quiet_period: float | None = None) -> None:
        """Initialize debouncer.

        Args:
            quiet_period: Seconds without a new edit before the callback runs.
                Defaults to settings.debounce_seconds.
        """
        self.quiet_period = settings.debounce_seconds if quiet_period is None else quiet_period
        self._task: asyncio.Task[Any] | None = None

    @property
    def pending(self) -> bool:
        """Whether a scheduled callback has not run yet."""
        return self._task is not None and not self._task.done()

    def schedule(self, callback: Callable[[], Awaitable[Any]]) -> asyncio.Task[Any]:
        """Replace any pending run with ``callback`` after the quiet period.

        Args:
            callback: Zero-argument coroutine function.

        Returns:
            The task that will run the callback.
        """
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run(callback))
        return self._task

    async def _run(self, callback: Callable[[], Awaitable[Any]]) -> Any:
        await asyncio.sleep(self.quiet_period)
        return await callback()

    def cancel(self) -> bool:
        """Cancel the pending run, if any. Returns True when one was cancelled."""
        task = self._task
        if task is None or task.done():
            return False
        task.cancel()
        logger.debug("Debounced call superseded")
        return True

    async def wait(self) -> None:
        """Wait until the latest scheduled run has finished or been cancelled."""
        if self._task is not None:
            await asyncio.wait({self._task})
