"""Health check: database connectivity and the access-control posture of this deploy."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from usogui.core.config import settings
from usogui.core.csrf import get_origin_guard
from usogui.core.database import check_db_connected, get_db
from usogui.rls.verify import check_app_role
from usogui.schemas.health import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _request_role_state(db: Session, role: str) -> str | None:
    try:
        problems = check_app_role(db.connection(), role)
    except SQLAlchemyError as e:
        logger.warning("Request role check failed: %s", e)
        return None
    return "misconfigured" if problems else "ok"


@router.get("/", response_model=HealthResponse)
def get_health(db: Session = Depends(get_db)) -> HealthResponse:
    """
    Return service health, database connectivity and whether row-level
    security and the origin guard are actually in force.
    """
    connected = check_db_connected(db)
    role = settings.DB_APP_ROLE
    return HealthResponse(
        status="ok",
        environment=settings.NODE_ENV,
        database="connected" if connected else "disconnected",
        row_level_security="request_role" if role else "table_owner",
        request_role=_request_role_state(db, role) if connected and role else None,
        csrf_bypass=get_origin_guard().bypass_enabled,
    )
