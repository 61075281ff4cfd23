"""Enable row-level security with the generated policy set.

Revision ID: 20251101100000
Revises: 20251101000000
Create Date: 2025-11-01

Installs auth.user_id(), auth.user_role(), auth.is_admin_or_moderator() and
auth.is_admin(), then enables RLS and creates the category policies for every
registered table that exists. Downgrade drops exactly what upgrade created.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from usogui.rls.sql import downgrade_statements, upgrade_statements

revision: str = "20251101100000"
down_revision: Union[str, None] = "20251101000000"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _existing_tables() -> set[str] | None:
    if op.get_context().as_sql:
        # Offline mode cannot inspect; emit DDL for every registered table.
        return None
    return set(sa.inspect(op.get_bind()).get_table_names(schema="public"))


def upgrade() -> None:
    for statement in upgrade_statements(_existing_tables()):
        op.execute(statement)


def downgrade() -> None:
    for statement in downgrade_statements(_existing_tables()):
        op.execute(statement)
