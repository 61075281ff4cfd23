"""SQLAlchemy ORM models."""

from usogui.models.base import Base
from usogui.models.donation import Donation
from usogui.models.edit_log import EditAction, EditLog
from usogui.models.guide import Guide, GuideLike
from usogui.models.user import User

__all__ = ["Base", "Donation", "EditAction", "EditLog", "Guide", "GuideLike", "User"]
