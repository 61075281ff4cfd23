"""
Single-row mutations under RLS.

A row the caller may not touch and a row that does not exist look the same
from here: the statement affects zero rows (or Postgres rejects the new row
with insufficient_privilege). Both surface as RowNotFoundError so callers
never learn whether a hidden row exists.
"""

import logging
from typing import Any

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

# SQLSTATE raised when a row fails an RLS WITH CHECK / INSERT policy.
INSUFFICIENT_PRIVILEGE = "42501"


class RowNotFoundError(Exception):
    """Target row is absent or not visible/mutable for the caller (deliberately indistinct)."""

    def __init__(self, message: str = "Not found") -> None:
        self.message = message
        super().__init__(message)


class PermissionDeniedError(Exception):
    """Caller is not allowed to perform the operation at all (e.g. anonymous insert)."""

    def __init__(self, message: str = "Forbidden") -> None:
        self.message = message
        super().__init__(message)


def is_rls_violation(exc: BaseException) -> bool:
    """True when a DBAPI error is Postgres insufficient_privilege (RLS check failed)."""
    if not isinstance(exc, DBAPIError):
        return False
    orig = getattr(exc, "orig", None)
    return getattr(orig, "pgcode", None) == INSUFFICIENT_PRIVILEGE


def mutate_one(db: Session, stmt: Any) -> int:
    """
    Execute an UPDATE/DELETE ... RETURNING id expected to hit exactly one row and commit.

    Zero rows or an RLS rejection rolls back and raises RowNotFoundError.
    """
    try:
        row_id = db.execute(stmt).scalar_one_or_none()
    except DBAPIError as e:
        db.rollback()
        if is_rls_violation(e):
            logger.info("Mutation rejected by row-level security")
            raise RowNotFoundError() from e
        raise
    if row_id is None:
        db.rollback()
        raise RowNotFoundError()
    db.commit()
    return row_id


def insert_one(db: Session, obj: Any) -> Any:
    """Add, commit and refresh a new row; an RLS rejection raises PermissionDeniedError."""
    db.add(obj)
    try:
        db.commit()
    except DBAPIError as e:
        db.rollback()
        if is_rls_violation(e):
            logger.info("Insert rejected by row-level security", extra={"table": obj.__tablename__})
            raise PermissionDeniedError() from e
        raise
    db.refresh(obj)
    return obj
