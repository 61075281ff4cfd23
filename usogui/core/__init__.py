"""Core app configuration, database and request security."""

from usogui.core.config import get_settings, settings
from usogui.core.database import get_db, principal_session
from usogui.core.principal import Principal, Role

__all__ = ["get_settings", "settings", "get_db", "principal_session", "Principal", "Role"]
