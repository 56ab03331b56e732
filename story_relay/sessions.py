"""In-memory session registry, one session per story id.

A Session pairs a story's TurnQueue with a WorkerSlot. The slot is an explicit
state machine for the persistent engine process:

    ABSENT ──acquire──▶ SPAWNING ──ok──▶ READY ──process exit──▶ EXITED
       ▲                    │                                      │
       └──── spawn failed ──┘                 acquire (respawn) ◀──┘

The registry is the only place sessions are created. get_or_create() has no
await in it, so two requests for the same story on the event loop can never
both build a session.

When a worker exits while its session is idle the session is dropped, and the
next turn gets a fresh one. If turns are still queued the session stays so they
keep their order; the next of them respawns the worker through the slot.

Nothing is persisted; all of this is rebuilt on demand after a restart.
"""

from __future__ import annotations

import enum
import logging
import time
from collections.abc import Awaitable, Callable

from story_relay.engine import WorkerHandle
from story_relay.serializer import TurnQueue

logger = logging.getLogger(__name__)


class WorkerState(str, enum.Enum):
    ABSENT = "absent"
    SPAWNING = "spawning"
    READY = "ready"
    EXITED = "exited"


class WorkerSlot:
    def __init__(self, story_id: str) -> None:
        self.story_id = story_id
        self.state = WorkerState.ABSENT
        self.handle: WorkerHandle | None = None
        self._exit_observers: list[Callable[[WorkerSlot], None]] = []

    def add_exit_observer(self, observer: Callable[[WorkerSlot], None]) -> None:
        self._exit_observers.append(observer)

    async def acquire(self, spawn: Callable[[], Awaitable[WorkerHandle]]) -> WorkerHandle:
        """Return the live handle, spawning a new process if there is none."""
        if self.state is WorkerState.READY and self.handle is not None and self.handle.alive:
            return self.handle

        self.state = WorkerState.SPAWNING
        self.handle = None
        try:
            handle = await spawn()
        except BaseException:
            self.state = WorkerState.ABSENT
            raise
        if not handle.alive:
            # exited before we got to look at it
            self.state = WorkerState.EXITED
            return handle
        self.handle = handle
        self.state = WorkerState.READY
        return handle

    def mark_exited(self, handle: WorkerHandle) -> None:
        """Called from the handle's exit monitor."""
        if handle is not self.handle:
            return
        self.handle = None
        self.state = WorkerState.EXITED
        for observer in list(self._exit_observers):
            observer(self)


class Session:
    def __init__(self, story_id: str) -> None:
        self.story_id = story_id
        self.queue = TurnQueue(story_id)
        self.slot = WorkerSlot(story_id)
        # informational only; nothing evicts on it yet
        self.last_used = time.time()

    @property
    def worker_state(self) -> WorkerState:
        return self.slot.state

    def touch(self) -> None:
        self.last_used = time.time()


class SessionRegistry:
    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, story_id: str) -> bool:
        return story_id in self._sessions

    def get(self, story_id: str) -> Session | None:
        return self._sessions.get(story_id)

    def sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def get_or_create(self, story_id: str) -> Session:
        session = self._sessions.get(story_id)
        if session is not None:
            stale = session.worker_state is WorkerState.EXITED and not session.queue.busy
            if not stale:
                session.touch()
                return session
            logger.info("Replacing session for %r after its worker exited", story_id)

        session = Session(story_id)
        session.slot.add_exit_observer(lambda slot, s=session: self._worker_exited(s))
        self._sessions[story_id] = session
        return session

    def remove(self, story_id: str) -> Session | None:
        return self._sessions.pop(story_id, None)

    def _worker_exited(self, session: Session) -> None:
        if self._sessions.get(session.story_id) is not session:
            return
        if session.queue.busy:
            logger.info("Worker for %r exited with turns pending; it will be respawned", session.story_id)
            return
        del self._sessions[session.story_id]

    async def close(self) -> None:
        """Terminate every live worker process."""
        for session in list(self._sessions.values()):
            handle = session.slot.handle
            if handle is not None and handle.alive:
                await handle.terminate()
        self._sessions.clear()
