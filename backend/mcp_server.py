"""FastMCP server exposing the story relay as MCP tools.

Tools:
  - list_stories()              — story ids and paths from the index
  - read_story_log(story_id)    — the story's log entries
  - submit_turn(story_id, text) — run one player turn, same as POST /api/prompt

Usage:
    uv run python -m backend.mcp_server
"""

from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP

from backend import runtime
from story_relay.config import RelayConfig
from story_relay.log import log_path, read_log

mcp = FastMCP("story-relay")


@mcp.tool()
def list_stories() -> list[dict]:
    """List the stories a turn can be submitted to."""
    return [story.model_dump() for story in runtime.index().list_stories()]


@mcp.tool()
def read_story_log(story_id: str) -> list[dict]:
    """Return the log entries of a story ([] for an unknown story)."""
    path = runtime.index().story_path(story_id)
    if path is None:
        return []
    return read_log(log_path(path))


@mcp.tool()
async def submit_turn(story_id: str, text: str) -> dict:
    """Submit a player turn and wait for the narration engine to finish it."""
    outcome = await runtime.relay().submit(story_id, text)
    return outcome.to_response()


if __name__ == "__main__":
    load_dotenv()
    runtime.init_runtime(RelayConfig.from_env())
    mcp.run()
