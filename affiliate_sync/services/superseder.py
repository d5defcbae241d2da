import asyncio
import logging
from collections.abc import Coroutine
from typing import Any, TypeVar

from affiliate_sync.core.exceptions import SupersededError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestSuperseder:
    """
    At most one in-flight request per resource; a new one cancels the old.

    The request runs in its own task, so it keeps going if the caller that
    started it goes away. Only a newer ``run()`` stops it.
    Callers whose request was replaced get ``SupersededError``.
    """

    def __init__(self, resource: str):
        self.resource = resource
        self._task: asyncio.Task | None = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self, coro: Coroutine[Any, Any, T]) -> T:
        previous = self._task
        if previous is not None and not previous.done():
            logger.debug(f"Cancelling pending {self.resource} request")
            previous.cancel()

        task = asyncio.create_task(coro)
        self._task = task
        task.add_done_callback(self._clear)

        await asyncio.wait({task})
        if task.cancelled():
            raise SupersededError(self.resource)
        return task.result()

    async def drain(self) -> None:
        """Wait for the in-flight request (if any) to land."""
        task = self._task
        if task is None:
            return
        await asyncio.wait({task})
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Pending {self.resource} request failed: {task.exception()}")

    def _clear(self, task: asyncio.Task) -> None:
        if self._task is task:
            self._task = None
