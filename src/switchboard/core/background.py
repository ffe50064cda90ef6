"""Best-effort side effects.

Tasks spawned here run alongside the pipeline without being awaited by it.
Their failures are logged and never reach the pipeline result.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Optional

from ..utils.sanitize import sanitize_error

logger = logging.getLogger(__name__)


class BackgroundTasks:
    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, awaitable: Awaitable, description: str) -> asyncio.Task:
        task = asyncio.ensure_future(self._run(awaitable, description))
        # The loop only keeps weak references to tasks
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, awaitable: Awaitable, description: str) -> None:
        try:
            await awaitable
        except Exception as e:
            logger.warning("Best-effort task failed (%s): %s", description, sanitize_error(str(e)))

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for outstanding tasks, e.g. before shutting the loop down."""
        if not self._tasks:
            return
        await asyncio.wait(set(self._tasks), timeout=timeout)
