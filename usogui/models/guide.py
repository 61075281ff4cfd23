"""ORM models for community guides and their likes."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, func

from usogui.models.base import Base
from usogui.rls.catalog import SubmissionStatus


class Guide(Base):
    """
    User-submitted guide. Visible to everyone once approved; the author can
    edit it while pending or rejected and delete it while pending.
    """

    __tablename__ = "guide"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(String(1024), nullable=False, default="")
    content = Column(Text, nullable=False)
    status = Column(
        String(16),
        nullable=False,
        default=SubmissionStatus.PENDING.value,
        server_default=SubmissionStatus.PENDING.value,
        index=True,
    )
    rejection_reason = Column("rejectionReason", String(1024), nullable=True)
    author_id = Column("authorId", Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column("createdAt", DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        "updatedAt",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class GuideLike(Base):
    """A user's like on a guide; each user manages only their own."""

    __tablename__ = "guide_like"

    user_id = Column("userId", Integer, ForeignKey("user.id", ondelete="CASCADE"), primary_key=True)
    guide_id = Column("guideId", Integer, ForeignKey("guide.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column("createdAt", DateTime(timezone=True), nullable=False, server_default=func.now())
