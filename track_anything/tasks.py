"""
Detached background tasks

Fire-and-forget work (position/color pushes, log backfill, filtered refreshes,
background collection refreshes) is submitted here instead of being left as
bare asyncio tasks, so failures always reach a handler and tests can wait for
the work to finish.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from track_anything.monitoring import capture_exception, track_background_failure

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[str, BaseException], None]


def log_task_failure(name: str, error: BaseException) -> None:
    """Default failure handler: log, count, report to Sentry"""
    logger.error(f"Background task '{name}' failed: {error}", exc_info=error)
    track_background_failure(name)
    capture_exception(error, background_task=name)


class BackgroundTasks:
    """Runner for detached coroutines"""

    def __init__(self, on_error: Optional[ErrorHandler] = None):
        self._on_error = on_error or log_task_failure
        self._tasks: set[asyncio.Task] = set()
        self._claimed: set[asyncio.Task] = set()

    def submit(self, coro: Awaitable[Any], name: str) -> asyncio.Task:
        """
        Schedule a coroutine without awaiting it.

        Must be called from inside a running event loop. The task keeps
        running even if the caller goes away.
        """
        task = asyncio.ensure_future(coro)
        task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        logger.debug(f"Submitted background task '{name}'")
        return task

    def claim(self, task: asyncio.Task) -> None:
        """
        Mark a submitted task as awaited by a caller.

        A claimed task's failure belongs to whoever awaits it, so the error
        handler is skipped for it.
        """
        if not task.done():
            self._claimed.add(task)

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        claimed = task in self._claimed
        self._claimed.discard(task)
        if task.cancelled():
            logger.debug(f"Background task '{task.get_name()}' cancelled")
            return
        error = task.exception()
        if error is not None and claimed:
            logger.debug(f"Task '{task.get_name()}' failed, error left to its caller: {error}")
        elif error is not None:
            try:
                self._on_error(task.get_name(), error)
            except Exception as e:
                logger.error(f"Error handler failed for '{task.get_name()}': {e}", exc_info=True)

    async def drain(self) -> None:
        """Wait until no background task is pending, including ones submitted meanwhile"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
            # Let done callbacks run before checking again
            await asyncio.sleep(0)

    async def cancel_all(self) -> None:
        """Cancel pending work (shutdown only)"""
        for task in list(self._tasks):
            task.cancel()
        await self.drain()

    @property
    def pending(self) -> int:
        return len(self._tasks)
