"""Per-session FIFO turn execution.

Each session owns one TurnQueue: a deque of pending closures drained by a
single asyncio task. A unit of work starts only after every unit submitted
before it has finished, whether it succeeded or raised. A failure is handed
to the submitter's future and the drain loop moves on to the next unit.

Queues for different sessions share nothing, so different stories progress
concurrently.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Work = Callable[[], Awaitable[Any]]


class TurnQueue:
    def __init__(self, name: str = "") -> None:
        self.name = name
        self._pending: deque[tuple[Work, asyncio.Future]] = deque()
        self._drainer: asyncio.Task | None = None
        self._running = False

    @property
    def busy(self) -> bool:
        """True while a unit is running or waiting to run."""
        return self._running or bool(self._pending)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def submit(self, work: Callable[[], Awaitable[T]]) -> asyncio.Future[T]:
        """Queue `work` behind everything already submitted.

        Must be called from the event loop thread. The returned future resolves
        with the work's result or exception; cancelling it does not stop the
        work once started.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[T] = loop.create_future()
        self._pending.append((work, future))
        if self._drainer is None or self._drainer.done():
            self._drainer = loop.create_task(self._drain(), name=f"turn-queue:{self.name}")
        return future

    async def join(self) -> None:
        """Wait until every submitted unit has finished."""
        while self._drainer is not None and not self._drainer.done():
            await asyncio.shield(self._drainer)

    async def _drain(self) -> None:
        try:
            while self._pending:
                await self._run_next()
        finally:
            # only reached with units left when the drainer itself was cancelled
            while self._pending:
                _, future = self._pending.popleft()
                future.cancel()

    async def _run_next(self) -> None:
        work, future = self._pending.popleft()
        self._running = True
        try:
            result = await work()
        except asyncio.CancelledError:
            future.cancel()
            if asyncio.current_task().cancelling():
                raise
            logger.warning("Turn in queue %r was cancelled", self.name)
        except Exception as e:
            if not future.done():
                future.set_exception(e)
            else:
                logger.warning("Turn in queue %r failed after its caller left: %s", self.name, e)
        else:
            if not future.done():
                future.set_result(result)
        finally:
            self._running = False
