"""Process-wide relay runtime shared by the HTTP routes and the MCP server."""

from __future__ import annotations

from story_relay.config import RelayConfig
from story_relay.engine import ProcessLauncher
from story_relay.relay import TurnRelay, build_relay
from story_relay.stories import StoryIndex

_config: RelayConfig | None = None
_relay: TurnRelay | None = None


def init_runtime(config: RelayConfig, launcher: ProcessLauncher | None = None) -> TurnRelay:
    global _config, _relay
    _config = config
    _relay = build_relay(config, launcher)
    return _relay


def config() -> RelayConfig:
    assert _config is not None, "Call init_runtime() before using the relay"
    return _config


def relay() -> TurnRelay:
    assert _relay is not None, "Call init_runtime() before using the relay"
    return _relay


def index() -> StoryIndex:
    return relay().index
