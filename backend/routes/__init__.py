"""FastAPI API endpoints under /api.

Endpoint groups: turn submission (prompt), stories (index + log), uploads,
settings (health, settings, sessions).
"""

from fastapi import APIRouter

from .prompt import router as prompt_router
from .settings import router as settings_router
from .stories import router as stories_router
from .uploads import router as uploads_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(stories_router)
router.include_router(prompt_router)
router.include_router(uploads_router)
