"""FastAPI API endpoints under /api.

Endpoint groups: settings (health + config), chat (tier rooms, messages,
live feed WebSocket), matching (rooms, slots, waiting lists, global queue).
The caller is identified by the X-User-Id header and resolved through the
profile service on every request.
"""

from fastapi import APIRouter

from .chat import router as chat_router
from .matching import router as matching_router
from .settings import router as settings_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(chat_router)
router.include_router(matching_router)
