"""Request/response schemas for guides, likes and moderation."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from usogui.rls.catalog import SubmissionStatus


class GuideCreate(BaseModel):
    """New guide; the author is always the caller and status always starts pending."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="", max_length=1024)
    content: str = Field(..., min_length=1)


class GuideUpdate(BaseModel):
    """Partial update by the author (or a moderator). Status is not settable here."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1024)
    content: str | None = Field(default=None, min_length=1)


class RejectRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=1024)


class GuideResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    content: str
    status: SubmissionStatus
    rejection_reason: str | None = None
    author_id: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class GuideListResponse(BaseModel):
    guides: list[GuideResponse]


class LikeResponse(BaseModel):
    guide_id: int
    liked: bool


class EditLogEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    entity_type: str
    entity_id: int
    action: str
    user_id: int | None = None
    changed_fields: list[str] | None = None
    created_at: datetime | None = None


class EditLogResponse(BaseModel):
    entries: list[EditLogEntry]
