"""Account endpoints. The user table is strictly owned, so only the caller's own row is visible."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from usogui.api.v1.auth import get_principal_db, require_authenticated
from usogui.core.principal import Principal
from usogui.models.user import User
from usogui.schemas.auth import UserProfile

router = APIRouter()


@router.get("/me", response_model=UserProfile)
def get_me(
    principal: Annotated[Principal, Depends(require_authenticated)],
    db: Annotated[Session, Depends(get_principal_db)],
) -> UserProfile:
    """Return the caller's account. 404 if the row is gone (token outlived the account)."""
    user = db.query(User).filter(User.id == principal.user_id).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return UserProfile.model_validate(user)
