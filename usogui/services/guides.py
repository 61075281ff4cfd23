"""
Guide submission, editing, moderation and likes.

All reads and writes go through a principal-bound session, so row visibility
and the ownership/status gates are enforced by RLS. Checks here only give
clearer errors up front; they never widen access.
"""

import logging
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from usogui.core.principal import Principal
from usogui.models import EditAction, EditLog, Guide, GuideLike
from usogui.rls.catalog import SubmissionStatus
from usogui.schemas.guide import GuideCreate, GuideUpdate
from usogui.services.rows import (
    PermissionDeniedError,
    RowNotFoundError,
    insert_one,
    mutate_one,
)

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 100

# edit_log.entityType for guide rows
GUIDE = "guide"


def list_guides(
    db: Session,
    status: SubmissionStatus | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Guide]:
    """Guides visible to the caller (approved, own, or all for moderators), newest first."""
    query = db.query(Guide)
    if status is not None:
        query = query.filter(Guide.status == status.value)
    limit = max(1, min(limit, MAX_LIST_LIMIT))
    return query.order_by(Guide.created_at.desc(), Guide.id.desc()).offset(max(0, offset)).limit(limit).all()


def get_guide(db: Session, guide_id: int) -> Guide:
    guide = db.query(Guide).filter(Guide.id == guide_id).first()
    if guide is None:
        raise RowNotFoundError()
    return guide


def create_guide(
    db: Session,
    principal: Principal,
    body: GuideCreate,
    audit_db: Session | None = None,
) -> Guide:
    """Create a pending guide authored by the caller."""
    if principal.user_id is None:
        raise PermissionDeniedError("Authentication required")
    guide = Guide(
        title=body.title,
        description=body.description,
        content=body.content,
        status=SubmissionStatus.PENDING.value,
        author_id=principal.user_id,
    )
    guide = insert_one(db, guide)
    if audit_db is not None:
        record_edit(audit_db, GUIDE, guide.id, EditAction.CREATE, principal.user_id)
    return guide


def update_guide(
    db: Session,
    principal: Principal,
    guide_id: int,
    body: GuideUpdate,
    audit_db: Session | None = None,
) -> Guide:
    """Apply a partial edit. Authors lose this once the guide is approved."""
    changes: dict[str, Any] = body.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        return get_guide(db, guide_id)
    values = {getattr(Guide, key): value for key, value in changes.items()}
    stmt = update(Guide).where(Guide.id == guide_id).values(values).returning(Guide.id)
    mutate_one(db, stmt)
    if audit_db is not None:
        record_edit(audit_db, GUIDE, guide_id, EditAction.UPDATE, principal.user_id, sorted(changes))
    return get_guide(db, guide_id)


def delete_guide(
    db: Session,
    principal: Principal,
    guide_id: int,
    audit_db: Session | None = None,
) -> None:
    stmt = delete(Guide).where(Guide.id == guide_id).returning(Guide.id)
    mutate_one(db, stmt)
    logger.info("Guide deleted", extra={"guide_id": guide_id, "user_id": principal.user_id})
    if audit_db is not None:
        record_edit(audit_db, GUIDE, guide_id, EditAction.DELETE, principal.user_id)


def set_guide_status(
    db: Session,
    principal: Principal,
    guide_id: int,
    status: SubmissionStatus,
    reason: str | None = None,
    audit_db: Session | None = None,
) -> Guide:
    """
    Moderation transition (approve/reject). Only moderators and admins; the
    UPDATE itself runs under the privileged policy.
    """
    if not principal.is_privileged:
        raise PermissionDeniedError("Moderator or admin role required")
    values = {
        Guide.status: status.value,
        Guide.rejection_reason: reason if status == SubmissionStatus.REJECTED else None,
    }
    stmt = update(Guide).where(Guide.id == guide_id).values(values).returning(Guide.id)
    mutate_one(db, stmt)
    logger.info(
        "Guide moderated",
        extra={"guide_id": guide_id, "status": status.value, "moderator_id": principal.user_id},
    )
    if audit_db is not None:
        changed = ["rejection_reason", "status"] if status == SubmissionStatus.REJECTED else ["status"]
        record_edit(audit_db, GUIDE, guide_id, EditAction.UPDATE, principal.user_id, changed)
    return get_guide(db, guide_id)


def toggle_like(db: Session, principal: Principal, guide_id: int) -> bool:
    """Like or unlike a visible guide for the caller; returns the new liked state."""
    if principal.user_id is None:
        raise PermissionDeniedError("Authentication required")
    get_guide(db, guide_id)
    existing = db.execute(
        select(GuideLike.guide_id).where(
            GuideLike.user_id == principal.user_id, GuideLike.guide_id == guide_id
        )
    ).scalar_one_or_none()
    if existing is not None:
        mutate_one(
            db,
            delete(GuideLike)
            .where(GuideLike.user_id == principal.user_id, GuideLike.guide_id == guide_id)
            .returning(GuideLike.guide_id),
        )
        return False
    insert_one(db, GuideLike(user_id=principal.user_id, guide_id=guide_id))
    return True


def record_edit(
    audit_db: Session,
    entity_type: str,
    entity_id: int,
    action: EditAction,
    user_id: int | None,
    changed_fields: list[str] | None = None,
) -> EditLog:
    """Append an audit entry. Needs the system session: edit_log has no end-user INSERT policy."""
    entry = EditLog(
        entity_type=entity_type,
        entity_id=entity_id,
        action=EditAction(action).value,
        user_id=user_id,
        changed_fields=changed_fields or None,
    )
    try:
        audit_db.add(entry)
        audit_db.commit()
    except SQLAlchemyError as e:
        audit_db.rollback()
        logger.error(
            "Failed to record edit: %s",
            e,
            extra={"entity_type": entity_type, "entity_id": entity_id, "action": entry.action},
        )
        raise
    return entry


def list_edit_log(
    db: Session,
    entity_type: str | None = None,
    entity_id: int | None = None,
    user_id: int | None = None,
    limit: int = 50,
) -> list[EditLog]:
    """
    Audit entries visible to the caller (everything for moderators, nothing
    otherwise), newest first, optionally narrowed to one entity or one editor.
    """
    query = db.query(EditLog)
    if entity_type is not None:
        query = query.filter(EditLog.entity_type == entity_type)
    if entity_id is not None:
        query = query.filter(EditLog.entity_id == entity_id)
    if user_id is not None:
        query = query.filter(EditLog.user_id == user_id)
    limit = max(1, min(limit, MAX_LIST_LIMIT))
    return query.order_by(EditLog.created_at.desc(), EditLog.id.desc()).limit(limit).all()
