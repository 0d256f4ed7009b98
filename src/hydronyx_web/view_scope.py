# src/hydronyx_web/view_scope.py

import asyncio
import logging
from typing import Any, Awaitable, Set

logger = logging.getLogger(__name__)


class ViewScopeClosed(RuntimeError):
    pass


class ViewScope:
    """
    Owns the in-flight API calls of one view.

    Work started through ``spawn``/``run`` is cancelled when the scope closes,
    so a view that goes away discards its pending requests instead of having
    late responses land on a dead view.

        async with ViewScope("policy") as scope:
            history = await scope.run(api.policy_history())
    """

    def __init__(self, name: str = "view"):
        self.name = name
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    def spawn(self, awaitable: Awaitable[Any]) -> asyncio.Task:
        if self._closed:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise ViewScopeClosed(f"View scope '{self.name}' is closed")
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def run(self, awaitable: Awaitable[Any]) -> Any:
        return await self.spawn(awaitable)

    async def close(self) -> None:
        self._closed = True
        current = asyncio.current_task()
        tasks = [task for task in self._tasks if not task.done() and task is not current]
        for task in tasks:
            task.cancel()
        if not tasks:
            return
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.warning(f"VIEW_SCOPE: '{self.name}' task failed while closing: {result!r}")
        logger.debug(f"VIEW_SCOPE: '{self.name}' cancelled {len(tasks)} pending task(s)")

    async def __aenter__(self) -> "ViewScope":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
