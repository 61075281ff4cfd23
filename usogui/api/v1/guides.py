"""Guide endpoints: RLS-filtered reads, owner edits gated by status, moderation and likes."""

from collections.abc import Callable
from typing import Annotated, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from usogui.api.v1.auth import (
    get_principal_db,
    require_authenticated,
    require_privileged,
)
from usogui.core.database import get_db
from usogui.core.principal import Principal
from usogui.rls.catalog import SubmissionStatus
from usogui.schemas.guide import (
    GuideCreate,
    GuideListResponse,
    GuideResponse,
    GuideUpdate,
    LikeResponse,
    RejectRequest,
)
from usogui.services import guides as guide_service
from usogui.services.rows import PermissionDeniedError, RowNotFoundError

router = APIRouter()

T = TypeVar("T")


def _run(fn: Callable[..., T], *args: object, **kwargs: object) -> T:
    """Call a service function, mapping domain errors to HTTP errors."""
    try:
        return fn(*args, **kwargs)
    except RowNotFoundError as e:
        # Same response whether the row is absent or hidden from this caller.
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e
    except PermissionDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message) from e


@router.get("", response_model=GuideListResponse)
def list_guides(
    db: Annotated[Session, Depends(get_principal_db)],
    status_filter: Annotated[SubmissionStatus | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=guide_service.MAX_LIST_LIMIT)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> GuideListResponse:
    """List guides visible to the caller. Anonymous callers only ever see approved guides."""
    guides = guide_service.list_guides(db, status=status_filter, limit=limit, offset=offset)
    return GuideListResponse(guides=[GuideResponse.model_validate(g) for g in guides])


@router.get("/{guide_id}", response_model=GuideResponse)
def get_guide(
    guide_id: int,
    db: Annotated[Session, Depends(get_principal_db)],
) -> GuideResponse:
    return GuideResponse.model_validate(_run(guide_service.get_guide, db, guide_id))


@router.post("", response_model=GuideResponse, status_code=status.HTTP_201_CREATED)
def create_guide(
    body: GuideCreate,
    principal: Annotated[Principal, Depends(require_authenticated)],
    db: Annotated[Session, Depends(get_principal_db)],
    audit_db: Annotated[Session, Depends(get_db)],
) -> GuideResponse:
    """Submit a guide for moderation. The author is the caller; status starts as pending."""
    guide = _run(guide_service.create_guide, db, principal, body, audit_db=audit_db)
    return GuideResponse.model_validate(guide)


@router.patch("/{guide_id}", response_model=GuideResponse)
def update_guide(
    guide_id: int,
    body: GuideUpdate,
    principal: Annotated[Principal, Depends(require_authenticated)],
    db: Annotated[Session, Depends(get_principal_db)],
    audit_db: Annotated[Session, Depends(get_db)],
) -> GuideResponse:
    """Edit a guide. Authors may edit while pending or rejected; moderators always."""
    guide = _run(guide_service.update_guide, db, principal, guide_id, body, audit_db=audit_db)
    return GuideResponse.model_validate(guide)


@router.delete("/{guide_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_guide(
    guide_id: int,
    principal: Annotated[Principal, Depends(require_authenticated)],
    db: Annotated[Session, Depends(get_principal_db)],
    audit_db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Delete a guide. Authors may delete only while pending; moderators always."""
    _run(guide_service.delete_guide, db, principal, guide_id, audit_db=audit_db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{guide_id}/approve", response_model=GuideResponse)
def approve_guide(
    guide_id: int,
    principal: Annotated[Principal, Depends(require_privileged)],
    db: Annotated[Session, Depends(get_principal_db)],
    audit_db: Annotated[Session, Depends(get_db)],
) -> GuideResponse:
    guide = _run(
        guide_service.set_guide_status,
        db,
        principal,
        guide_id,
        SubmissionStatus.APPROVED,
        audit_db=audit_db,
    )
    return GuideResponse.model_validate(guide)


@router.post("/{guide_id}/reject", response_model=GuideResponse)
def reject_guide(
    guide_id: int,
    body: RejectRequest,
    principal: Annotated[Principal, Depends(require_privileged)],
    db: Annotated[Session, Depends(get_principal_db)],
    audit_db: Annotated[Session, Depends(get_db)],
) -> GuideResponse:
    guide = _run(
        guide_service.set_guide_status,
        db,
        principal,
        guide_id,
        SubmissionStatus.REJECTED,
        reason=body.reason,
        audit_db=audit_db,
    )
    return GuideResponse.model_validate(guide)


@router.post("/{guide_id}/like", response_model=LikeResponse)
def toggle_like(
    guide_id: int,
    principal: Annotated[Principal, Depends(require_authenticated)],
    db: Annotated[Session, Depends(get_principal_db)],
) -> LikeResponse:
    liked = _run(guide_service.toggle_like, db, principal, guide_id)
    return LikeResponse(guide_id=guide_id, liked=liked)
