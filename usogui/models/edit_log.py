"""ORM model for the append-only moderation/edit audit log."""

from enum import Enum

from sqlalchemy import Column, DateTime, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB

from usogui.models.base import Base


class EditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class EditLog(Base):
    """
    One row per content change. Written by the system session only;
    moderators and admins can read it, admins can prune it.
    """

    __tablename__ = "edit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_type = Column("entityType", String(32), nullable=False)
    entity_id = Column("entityId", Integer, nullable=False)
    action = Column(String(16), nullable=False)
    user_id = Column("userId", Integer, nullable=True, index=True)
    changed_fields = Column("changedFields", JSONB, nullable=True)
    created_at = Column("createdAt", DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
