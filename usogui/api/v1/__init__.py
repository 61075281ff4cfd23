"""API v1 routes."""

from fastapi import APIRouter

from usogui.api.v1 import auth, edit_log, guides, health, users

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(guides.router, prefix="/guides", tags=["guides"])
router.include_router(edit_log.router, prefix="/edit-log", tags=["edit-log"])
