"""Audit log listing for moderators and admins."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from usogui.api.v1.auth import get_principal_db, require_privileged
from usogui.core.principal import Principal
from usogui.schemas.guide import EditLogEntry, EditLogResponse
from usogui.services.guides import MAX_LIST_LIMIT, list_edit_log

router = APIRouter()


@router.get("", response_model=EditLogResponse)
def get_edit_log(
    _moderator: Annotated[Principal, Depends(require_privileged)],
    db: Annotated[Session, Depends(get_principal_db)],
    entity_type: Annotated[str | None, Query(alias="entityType", max_length=32)] = None,
    entity_id: Annotated[int | None, Query(alias="entityId", ge=1)] = None,
    user_id: Annotated[int | None, Query(alias="userId", ge=1)] = None,
    limit: Annotated[int, Query(ge=1, le=MAX_LIST_LIMIT)] = 50,
) -> EditLogResponse:
    """
    Most recent audit entries, optionally for one entity (entityType + entityId)
    or one editor (userId). RLS also limits the table to moderators and admins.
    """
    entries = list_edit_log(db, entity_type=entity_type, entity_id=entity_id, user_id=user_id, limit=limit)
    return EditLogResponse(entries=[EditLogEntry.model_validate(e) for e in entries])
