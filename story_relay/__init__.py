"""Session orchestration core for an external narration engine.

One player turn flows through:

    StoryIndex.resolve → SessionRegistry.get_or_create → TurnQueue.submit
      → append_player_turn → Worker.run_turn → TurnOutcome

Nothing here interprets what the engine writes. The only signals observed are
process exit codes and changes to the story's log file on disk.
"""

from story_relay.config import RelayConfig  # noqa: F401
from story_relay.errors import (  # noqa: F401
    EngineFailedError,
    EngineUnavailableError,
    RelayError,
    SettleTimeoutError,
    TurnInputError,
)
from story_relay.models import LogEntry, Story, TurnOutcome  # noqa: F401
from story_relay.relay import TurnRelay, build_relay  # noqa: F401
