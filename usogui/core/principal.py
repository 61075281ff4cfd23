"""The authenticated caller as seen by the access-control layer."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    ANON = "anon"
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"


def normalize_role(value: Any) -> Role:
    """
    Map a raw role claim onto Role. The only place role casing is handled:
    'ADMIN' and 'admin' are the same role; anything unrecognised is anon.
    """
    if not isinstance(value, str):
        return Role.ANON
    try:
        return Role(value.strip().lower())
    except ValueError:
        return Role.ANON


def parse_user_id(value: Any) -> int | None:
    """Parse the sub claim as a positive integer id; None when it is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str):
        s = value.strip()
        # Mirrors auth.user_id(): at most 9 digits so it always fits an INTEGER.
        if s.isascii() and s.isdigit() and len(s) <= 9 and int(s) > 0:
            return int(s)
    return None


class Principal(BaseModel):
    """Caller identity derived from token claims; lives only for one request."""

    model_config = ConfigDict(frozen=True)

    user_id: int | None = None
    role: Role = Role.ANON

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls(user_id=None, role=Role.ANON)

    @classmethod
    def from_claims(cls, claims: dict[str, Any] | None) -> "Principal":
        if not claims:
            return cls.anonymous()
        return cls(
            user_id=parse_user_id(claims.get("sub")),
            role=normalize_role(claims.get("role")),
        )

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None

    @property
    def is_privileged(self) -> bool:
        return self.role in (Role.ADMIN, Role.MODERATOR)

    @property
    def is_superuser(self) -> bool:
        return self.role == Role.ADMIN

    def to_claims(self) -> dict[str, str | None]:
        """Claims blob written to request.jwt.claims for the RLS predicates."""
        return {
            "sub": str(self.user_id) if self.user_id is not None else None,
            "role": self.role.value,
        }
