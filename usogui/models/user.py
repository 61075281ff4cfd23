"""ORM model for site accounts (auth and roles)."""

from sqlalchemy import Column, DateTime, Integer, String, func

from usogui.models.base import Base


class User(Base):
    """
    Account row. Strictly owned: only the user themselves and admins can see it
    once RLS is on, so login reads it through the system session.

    role: 'user', 'moderator' or 'admin'
    """

    __tablename__ = "user"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=True, unique=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default="user")
    created_at = Column("createdAt", DateTime(timezone=True), nullable=False, server_default=func.now())
