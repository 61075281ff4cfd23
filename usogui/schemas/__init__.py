"""Pydantic request/response schemas."""

from usogui.schemas.auth import LoginRequest, TokenResponse, UserProfile
from usogui.schemas.guide import (
    EditLogEntry,
    EditLogResponse,
    GuideCreate,
    GuideListResponse,
    GuideResponse,
    GuideUpdate,
    LikeResponse,
    RejectRequest,
)
from usogui.schemas.health import HealthResponse

__all__ = [
    "EditLogEntry",
    "EditLogResponse",
    "GuideCreate",
    "GuideListResponse",
    "GuideResponse",
    "GuideUpdate",
    "HealthResponse",
    "LikeResponse",
    "LoginRequest",
    "RejectRequest",
    "TokenResponse",
    "UserProfile",
]
