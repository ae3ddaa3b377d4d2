"""Detached background work for inbound deliveries.

Slack expects an acknowledgment within three seconds and re-delivers
otherwise, so routes ack first and hand slow work (history fetches,
generation calls) to a TaskRunner. Tasks run concurrently with no ordering
between them.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


class TaskRunner:
    """Submits coroutines as detached asyncio tasks and tracks them.

    Exceptions raised by a job are logged and never propagate. `join()`
    waits for everything submitted so far, which tests use to await
    completion deterministically.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def submit(
        self,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        name: str | None = None,
        **kwargs: Any,
    ) -> asyncio.Task:
        """Schedule func(*args, **kwargs) on the running event loop.

        Args:
            func: Async callable to run.
            *args: Positional arguments for func.
            name: Task name used in logs.
            **kwargs: Keyword arguments for func.

        Returns:
            The created task.
        """
        task_name = name or getattr(func, "__name__", "background-job")
        task = asyncio.create_task(self._run(task_name, func, *args, **kwargs), name=task_name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug("Submitted background job %s", task_name)
        return task

    async def _run(
        self,
        name: str,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        **kwargs: Any,
    ) -> None:
        try:
            await func(*args, **kwargs)
        except asyncio.CancelledError:
            logger.warning("Background job %s cancelled", name)
            raise
        except Exception:
            logger.exception("Background job %s failed", name)

    @property
    def pending(self) -> int:
        """Number of jobs that have not finished yet."""
        return len(self._tasks)

    async def join(self) -> None:
        """Wait for all submitted jobs, including ones submitted while waiting."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Drain outstanding jobs before the process exits."""
        if self._tasks:
            logger.info("Waiting for %d background job(s)", len(self._tasks))
        await self.join()
