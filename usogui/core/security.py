"""
Credentials and tokens: account field limits, assignable roles, bcrypt
hashing and the JWTs whose claims end up in request.jwt.claims.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt

from usogui.core.config import settings
from usogui.core.principal import Principal, Role, normalize_role

# Bcrypt cost (rounds); stored hashes below this are upgraded on the next login.
BCRYPT_ROUNDS = 12
# bcrypt ignores input past 72 bytes; hashing and checking both cut there.
BCRYPT_MAX_BYTES = 72

USERNAME_MIN_LEN = 1
USERNAME_MAX_LEN = 255
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

# Roles an account row may hold. anon is what the database sees without claims.
ASSIGNABLE_ROLES: tuple[Role, ...] = (Role.USER, Role.MODERATOR, Role.ADMIN)


class CredentialsError(ValueError):
    """A username, password or role that cannot be stored on an account."""


def check_username(username: str) -> str:
    """Return the stripped username, or raise CredentialsError."""
    name = username.strip()
    if not (USERNAME_MIN_LEN <= len(name) <= USERNAME_MAX_LEN):
        raise CredentialsError("Invalid username length.")
    if any(not ch.isprintable() for ch in name):
        raise CredentialsError("Username contains control characters.")
    return name


def check_password(password: str) -> None:
    if not (PASSWORD_MIN_LEN <= len(password) <= PASSWORD_MAX_LEN):
        raise CredentialsError("Invalid password length.")


def parse_assignable_role(value: str | Role) -> Role:
    """
    Role for a new or updated account, case-insensitive. Unlike token claims,
    an unknown value is an error here rather than a silent anon.
    """
    raw = value.value if isinstance(value, Role) else value
    role = normalize_role(raw)
    if role not in ASSIGNABLE_ROLES:
        allowed = ", ".join(r.value for r in ASSIGNABLE_ROLES)
        raise CredentialsError(f"Role must be one of: {allowed}.")
    return role


def _password_bytes(plain_password: str) -> bytes:
    return plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    return bcrypt.hashpw(_password_bytes(plain_password), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def needs_rehash(hashed: str) -> bool:
    """True when a stored bcrypt hash uses fewer rounds than BCRYPT_ROUNDS."""
    # Modular crypt format: $2b$12$<salt+hash>
    parts = hashed.split("$")
    if len(parts) < 4 or not parts[2].isdigit():
        return False
    return int(parts[2]) < BCRYPT_ROUNDS


def create_access_token(sub: int, role: str | Role) -> str:
    """Create a JWT access token with sub (user id), normalized role, and exp."""
    now = datetime.now(UTC)
    expire = now + timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    payload: dict[str, Any] = {
        "sub": str(sub),
        "role": normalize_role(role.value if isinstance(role, Role) else role).value,
        "exp": expire,
        "iat": now,
    }
    secret = settings.JWT_SECRET.get_secret_value()
    return jwt.encode(
        payload,
        secret,
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and validate JWT; return payload (sub, role, exp, iat).
    Raises jwt.PyJWTError on invalid or expired token.
    """
    secret = settings.JWT_SECRET.get_secret_value()
    return jwt.decode(
        token,
        secret,
        algorithms=[settings.JWT_ALGORITHM],
        options={"require": ["sub", "exp"]},
    )


def principal_from_token(token: str) -> Principal:
    """Decode a bearer token into a Principal. Raises jwt.PyJWTError when invalid."""
    return Principal.from_claims(decode_access_token(token))
