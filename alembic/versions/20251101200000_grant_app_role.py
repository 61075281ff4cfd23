"""Create and grant the request role that principal-bound sessions switch to.

Revision ID: 20251101200000
Revises: 20251101100000
Create Date: 2025-11-01

Migrations run as the table owner, and owners bypass row-level security.
Requests therefore SET LOCAL ROLE to DB_APP_ROLE: a NOLOGIN, NOBYPASSRLS role
with USAGE on public and auth, EXECUTE on the auth helpers, sequence access
and DML on the protected tables. The owner becomes a member so it can switch.
"""
import logging
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from usogui.core.config import settings
from usogui.rls.sql import app_role_statements, revoke_app_role_statements

revision: str = "20251101200000"
down_revision: Union[str, None] = "20251101100000"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

logger = logging.getLogger("alembic.env")


def _existing_tables() -> set[str] | None:
    if op.get_context().as_sql:
        return None
    return set(sa.inspect(op.get_bind()).get_table_names(schema="public"))


def upgrade() -> None:
    role = settings.DB_APP_ROLE
    if role is None:
        logger.warning("DB_APP_ROLE is not set; no request role created. Requests will bypass RLS.")
        return
    for statement in app_role_statements(role, _existing_tables()):
        op.execute(statement)


def downgrade() -> None:
    role = settings.DB_APP_ROLE
    if role is None:
        return
    for statement in revoke_app_role_statements(role, _existing_tables()):
        op.execute(statement)
