"""Request/response schemas for auth and account endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from usogui.core.principal import Role, normalize_role


class LoginRequest(BaseModel):
    """Credentials for login."""

    username: str = Field(..., min_length=1, max_length=255, description="Username")
    password: str = Field(..., min_length=8, max_length=128, description="Password")


class TokenResponse(BaseModel):
    """JWT access token returned after successful login."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")


class UserProfile(BaseModel):
    """The caller's own account row as visible through RLS."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str | None = None
    role: Role
    created_at: datetime | None = None

    @field_validator("role", mode="before")
    @classmethod
    def normalize(cls, v: Any) -> Role:
        return normalize_role(v.value if isinstance(v, Role) else v)
