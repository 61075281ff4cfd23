"""JWT login and request identity dependencies (get_principal, get_principal_db, role gates)."""

import logging
from collections.abc import Generator
from typing import Annotated

import jwt
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from usogui.core.database import get_db, principal_session
from usogui.core.principal import Principal
from usogui.core.security import (
    CredentialsError,
    check_password,
    check_username,
    create_access_token,
    hash_password,
    needs_rehash,
    principal_from_token,
    verify_password,
)
from usogui.models.user import User
from usogui.schemas.auth import LoginRequest, TokenResponse

logger = logging.getLogger(__name__)

router = APIRouter()
security = HTTPBearer(auto_error=False)


@router.post("", response_model=TokenResponse)
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
) -> TokenResponse:
    """
    Authenticate with username and password; returns a JWT access token.
    Include the token in the Authorization header as: Bearer <access_token>

    Runs on the system session: the user table is owner-only under RLS and
    the caller has no identity yet.
    """
    try:
        username = check_username(body.username)
        check_password(body.password)
    except CredentialsError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    user = db.query(User).filter(User.username == username).first()
    if user is None or not verify_password(body.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password.",
        )
    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(body.password)
        db.commit()
        logger.info("Password hash upgraded", extra={"user_id": user.id})
    token = create_access_token(sub=user.id, role=user.role)
    return TokenResponse(access_token=token, token_type="bearer")


def get_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Principal:
    """
    Dependency: the caller derived from the Bearer JWT, or anonymous when no
    token is sent. A token that is present but invalid or expired is a 401,
    never a silent downgrade to anonymous.
    """
    if credentials is None:
        return Principal.anonymous()
    try:
        return principal_from_token(credentials.credentials)
    except jwt.PyJWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_authenticated(
    principal: Annotated[Principal, Depends(get_principal)],
) -> Principal:
    """Dependency: caller must carry a user id. Raises 401 otherwise."""
    if principal.user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


def require_privileged(
    principal: Annotated[Principal, Depends(require_authenticated)],
) -> Principal:
    """Dependency: moderator or admin. Raises 403 otherwise."""
    if not principal.is_privileged:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Moderator or admin role required",
        )
    return principal


def get_principal_db(
    principal: Annotated[Principal, Depends(get_principal)],
) -> Generator[Session, None, None]:
    """Dependency that yields a session whose transactions carry the caller's claims."""
    with principal_session(principal) as db:
        yield db
