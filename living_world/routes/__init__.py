"""FastAPI API endpoints under /api.

Endpoint groups: settings (the panel's record), lorebooks and connection
profiles (dropdown sources), generation (manual generate + the HTTP form of
the interceptor hook), notifications.
"""

from fastapi import APIRouter

from .generation import router as generation_router
from .lorebooks import router as lorebooks_router
from .settings import router as settings_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(lorebooks_router)
router.include_router(generation_router)
