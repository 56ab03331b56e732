"""Log settlement detection.

The engine gives no signal when it has finished a turn. All that can be seen
from outside is its writes to the story log, so a turn counts as complete once
the log has changed at least once and then stayed unchanged for `debounce`
seconds. Several writes in quick succession for one turn are absorbed by the
debounce window.

A file that does not exist yet is a valid baseline; its appearance counts as
a change, and so does its disappearance.

Limitation: an engine that writes, pauses longer than the debounce window,
then writes again is reported as settled after the first write.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import os
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.4
DEFAULT_DEBOUNCE = 1.0
DEFAULT_TIMEOUT = 120.0


class Settlement(str, enum.Enum):
    SETTLED = "settled"
    TIMED_OUT = "timedOut"


@dataclass(frozen=True)
class FileState:
    exists: bool
    size: int = 0
    mtime_ns: int = 0


MISSING = FileState(exists=False)


def snapshot(path: Path) -> FileState:
    try:
        st = os.stat(path)
    except OSError:
        return MISSING
    return FileState(exists=True, size=st.st_size, mtime_ns=st.st_mtime_ns)


class SettleWatcher:
    """Watches one file from the moment it is constructed.

    Build the watcher *before* triggering the work that writes the file, so
    an early write is not mistaken for the baseline.
    """

    def __init__(
        self,
        path: Path,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        debounce: float = DEFAULT_DEBOUNCE,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.path = path
        self._poll_interval = poll_interval
        self._debounce = debounce
        self._clock = clock
        self._sleep = sleep
        self.baseline = snapshot(path)

    async def wait(self, timeout: float = DEFAULT_TIMEOUT) -> Settlement:
        last = self.baseline
        start = self._clock()
        last_change = start
        seen_change = False

        while self._clock() - start < timeout:
            await self._sleep(self._poll_interval)
            current = snapshot(self.path)
            if current != last:
                seen_change = True
                last_change = self._clock()
                last = current
            if seen_change and self._clock() - last_change >= self._debounce:
                logger.debug("%s settled after %.2fs", self.path, self._clock() - start)
                return Settlement.SETTLED

        logger.debug("%s did not settle within %.1fs", self.path, timeout)
        return Settlement.TIMED_OUT


async def await_settled(
    path: Path,
    timeout: float = DEFAULT_TIMEOUT,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    debounce: float = DEFAULT_DEBOUNCE,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Settlement:
    """Capture a baseline now and wait for `path` to change and go quiet."""
    watcher = SettleWatcher(path, poll_interval, debounce, clock=clock, sleep=sleep)
    return await watcher.wait(timeout)
