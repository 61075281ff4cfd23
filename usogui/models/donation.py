"""ORM model for donations (private financial data)."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, func

from usogui.models.base import Base


class Donation(Base):
    """Visible to the donor and admins only; moderators do not see donations."""

    __tablename__ = "donation"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column("userId", Integer, ForeignKey("user.id", ondelete="SET NULL"), nullable=True, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    created_at = Column("createdAt", DateTime(timezone=True), nullable=False, server_default=func.now())
