"""Initial schema: user, guide, guide_like, donation, edit_log.

Revision ID: 20251101000000
Revises:
Create Date: 2025-11-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "20251101000000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="user"),
        sa.Column("createdAt", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_user"),
        sa.UniqueConstraint("email", name="uq_user_email"),
    )
    op.create_index("ix_user_username", "user", ["username"], unique=True)

    op.create_table(
        "guide",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=1024), nullable=False, server_default=""),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("rejectionReason", sa.String(length=1024), nullable=True),
        sa.Column("authorId", sa.Integer(), nullable=False),
        sa.Column("createdAt", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updatedAt", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_guide"),
        sa.ForeignKeyConstraint(["authorId"], ["user.id"], name="fk_guide_authorId_user", ondelete="CASCADE"),
        sa.CheckConstraint("status IN ('pending', 'approved', 'rejected')", name="ck_guide_status"),
    )
    op.create_index("ix_guide_status", "guide", ["status"])
    op.create_index("ix_guide_authorId", "guide", ["authorId"])

    op.create_table(
        "guide_like",
        sa.Column("userId", sa.Integer(), nullable=False),
        sa.Column("guideId", sa.Integer(), nullable=False),
        sa.Column("createdAt", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("userId", "guideId", name="pk_guide_like"),
        sa.ForeignKeyConstraint(["userId"], ["user.id"], name="fk_guide_like_userId_user", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["guideId"], ["guide.id"], name="fk_guide_like_guideId_guide", ondelete="CASCADE"),
    )

    op.create_table(
        "donation",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("userId", sa.Integer(), nullable=True),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="USD"),
        sa.Column("createdAt", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_donation"),
        sa.ForeignKeyConstraint(["userId"], ["user.id"], name="fk_donation_userId_user", ondelete="SET NULL"),
    )
    op.create_index("ix_donation_userId", "donation", ["userId"])

    op.create_table(
        "edit_log",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("entityType", sa.String(length=32), nullable=False),
        sa.Column("entityId", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(length=16), nullable=False),
        sa.Column("userId", sa.Integer(), nullable=True),
        sa.Column("changedFields", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("createdAt", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_edit_log"),
    )
    op.create_index("ix_edit_log_userId", "edit_log", ["userId"])
    op.create_index("ix_edit_log_createdAt", "edit_log", ["createdAt"])


def downgrade() -> None:
    op.drop_index("ix_edit_log_createdAt", table_name="edit_log")
    op.drop_index("ix_edit_log_userId", table_name="edit_log")
    op.drop_table("edit_log")
    op.drop_index("ix_donation_userId", table_name="donation")
    op.drop_table("donation")
    op.drop_table("guide_like")
    op.drop_index("ix_guide_authorId", table_name="guide")
    op.drop_index("ix_guide_status", table_name="guide")
    op.drop_table("guide")
    op.drop_index("ix_user_username", table_name="user")
    op.drop_table("user")
