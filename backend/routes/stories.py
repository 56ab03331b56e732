"""Story index and log read endpoints."""

from fastapi import APIRouter, HTTPException

from backend import runtime
from story_relay.log import log_path, read_log

router = APIRouter()


@router.get("/stories")
async def list_stories():
    """List stories from the index."""
    return [story.model_dump() for story in runtime.index().list_stories()]


@router.get("/stories/{story_id}/log")
async def get_story_log(story_id: str):
    """Get a story's log entries."""
    path = runtime.index().story_path(story_id)
    if path is None:
        raise HTTPException(404, "Story not found")
    return read_log(log_path(path))
