import asyncio
from typing import Awaitable, Optional, Set

from loguru import logger


class TaskDispatcher:
    """
    Runs best-effort side work (emails, alerts) as detached asyncio tasks.

    The caller never awaits the task. A strong reference is held until the
    task finishes; failures are logged in the done-callback.
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> Set[asyncio.Task]:
        return set(self._tasks)

    def dispatch(self, coro: Awaitable, name: Optional[str] = None) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        if name:
            task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Background task cancelled: {}", task.get_name())
            return
        error = task.exception()
        if error is not None:
            logger.opt(exception=error).error("Background task failed: {}", task.get_name())

    async def drain(self) -> None:
        """Wait for every task queued so far (shutdown, tests)"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
