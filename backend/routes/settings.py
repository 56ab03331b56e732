"""Health check and settings endpoints."""

from fastapi import APIRouter

from backend import runtime

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/settings")
async def get_settings():
    """Get relay settings (worker mode, timeouts). The engine path is not exposed."""
    return runtime.config().public_view()


@router.get("/sessions")
async def list_sessions():
    """List live sessions with their worker state and queue depth."""
    return [
        {
            "story_id": s.story_id,
            "worker_state": s.worker_state.value,
            "busy": s.queue.busy,
            "pending": s.queue.pending,
            "last_used": s.last_used,
        }
        for s in runtime.relay().registry.sessions()
    ]
