"""
PostgreSQL connection and session management, plus the claims contract RLS relies on.

Every transaction on a principal-bound session starts with
``set_config('request.jwt.claims', <json>, true)`` so the auth.* predicate
functions see the caller. The setting is transaction-local: it disappears at
commit/rollback and is re-applied when the session begins its next transaction,
whichever pooled connection that transaction lands on.
"""

import json
import logging
from collections.abc import Generator, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Connection
from sqlalchemy.orm import Session, SessionTransaction, sessionmaker

from usogui.core.config import settings
from usogui.core.principal import Principal
from usogui.rls.sql import CLAIMS_SETTING

logger = logging.getLogger(__name__)

PRINCIPAL_KEY = "principal"

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    echo=settings.DEBUG,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

if settings.DB_APP_ROLE is None:
    logger.warning(
        "DB_APP_ROLE is not set: request sessions keep the connecting role, so row-level "
        "security applies only if that role does not own the tables"
    )


def claims_payload(principal: Principal) -> str:
    """JSON claims blob for request.jwt.claims (sub and role)."""
    return json.dumps(principal.to_claims(), separators=(",", ":"), sort_keys=True)


def bind_principal(session: Session, principal: Principal) -> Session:
    """Attach the caller to a session; claims are applied on each transaction begin."""
    session.info[PRINCIPAL_KEY] = principal
    return session


def get_bound_principal(session: Session) -> Principal | None:
    return session.info.get(PRINCIPAL_KEY)


def apply_claims(connection: Connection, principal: Principal, app_role: str | None) -> None:
    """Set the transaction-local claims (and role switch) on a connection."""
    connection.execute(
        text("SELECT set_config(:name, :claims, true)"),
        {"name": CLAIMS_SETTING, "claims": claims_payload(principal)},
    )
    if app_role:
        # app_role is validated as a plain identifier in Settings.
        connection.exec_driver_sql(f"SET LOCAL ROLE {app_role}")


@event.listens_for(SessionLocal, "after_begin")
def _apply_principal_on_begin(
    session: Session, transaction: SessionTransaction, connection: Connection
) -> None:
    principal = get_bound_principal(session)
    if principal is None:
        return
    apply_claims(connection, principal, settings.DB_APP_ROLE)


@event.listens_for(engine, "checkin")
def _reset_session_state(dbapi_connection: Any, connection_record: Any) -> None:
    """Scrub any session-level claims or role before a connection is reused."""
    if dbapi_connection is None:
        return
    try:
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute(f"RESET {CLAIMS_SETTING}")
            cursor.execute("RESET ROLE")
        finally:
            cursor.close()
        dbapi_connection.commit()
    except Exception as e:
        # A connection that cannot be scrubbed must never be handed out again.
        logger.error("Discarding pooled connection after failed reset: %s", e)
        connection_record.invalidate(e)


def get_db() -> Generator[Session, None, None]:
    """Dependency that yields a system DB session (no caller claims) and closes it when done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def principal_session(principal: Principal) -> Iterator[Session]:
    """Session whose every transaction runs under the given principal's claims."""
    db = bind_principal(SessionLocal(), principal)
    try:
        yield db
    finally:
        db.close()


def check_db_connected(db: Session) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        db.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
