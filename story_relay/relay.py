"""Turn relay: runs one player turn end-to-end.

Turn flow:
  1. Validate input: trimmed story id and text must be non-empty and the
     story id must be in the index. Input errors return at once; no session,
     queue entry, log write or engine call happens.
  2. Look up (or create) the story's session.
  3. Queue the turn on the session's TurnQueue. Once it reaches the front:
       a. append the player's verbatim text to the story log,
       b. hand the turn to the worker and wait for it to finish.
  4. Convert whatever happened into a TurnOutcome. Exceptions never escape,
     so one failed turn cannot stall the queue behind it.

No step is retried. Retrying is up to the caller.
"""

from __future__ import annotations

import logging
from pathlib import Path

from story_relay.config import RelayConfig
from story_relay.engine import ProcessLauncher
from story_relay.errors import RelayError, TurnInputError
from story_relay.log import append_player_turn
from story_relay.models import Story, TurnOutcome
from story_relay.sessions import Session, SessionRegistry
from story_relay.stories import StoryIndex
from story_relay.workers import Worker, build_worker

logger = logging.getLogger(__name__)

MISSING_INPUT = "Missing storyId or text."
UNKNOWN_STORY = "Unknown story id."


class TurnRelay:
    def __init__(self, index: StoryIndex, registry: SessionRegistry, worker: Worker) -> None:
        self.index = index
        self.registry = registry
        self.worker = worker

    async def submit(self, story_id: str, text: str) -> TurnOutcome:
        """Run one turn for `story_id`, queued behind any earlier turns."""
        story_id = (story_id or "").strip()
        text = (text or "").strip()
        try:
            story = self._validate(story_id, text)
        except TurnInputError as e:
            return TurnOutcome.failure(e.kind, str(e))

        session = self.registry.get_or_create(story.id)
        return await session.queue.submit(lambda: self._run_turn(session, story, text))

    def _validate(self, story_id: str, text: str) -> Story:
        if not story_id or not text:
            raise TurnInputError(MISSING_INPUT)
        story = self.index.resolve(story_id)
        if story is None:
            raise TurnInputError(UNKNOWN_STORY)
        return story

    async def _run_turn(self, session: Session, story: Story, text: str) -> TurnOutcome:
        story_dir = story.directory(self.index.root_dir)
        session.touch()
        try:
            append_player_turn(story_dir, text)
            updated = await self.worker.run_turn(session, story_dir, text)
        except RelayError as e:
            logger.warning("Turn for %r failed (%s): %s", story.id, e.kind, e)
            return TurnOutcome.failure(e.kind, str(e))
        except Exception as e:
            logger.exception("Turn for %r failed unexpectedly", story.id)
            return TurnOutcome.failure("internal", f"Turn failed: {e}")
        return TurnOutcome.success(updated)

    async def close(self) -> None:
        await self.registry.close()


def build_relay(config: RelayConfig, launcher: ProcessLauncher | None = None) -> TurnRelay:
    """Wire index, registry and the configured worker together."""
    index = StoryIndex(Path(config.index_path), config.root_dir)
    return TurnRelay(index, SessionRegistry(), build_worker(config, launcher))
