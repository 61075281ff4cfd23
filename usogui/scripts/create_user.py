"""
Create a user (e.g. the first admin). Run from project root:
  python -m usogui.scripts.create_user USERNAME PASSWORD [role]
Example:
  python -m usogui.scripts.create_user admin your-secure-password admin

Uses the system session: the user table has no end-user INSERT policy.
"""
import argparse
import sys

from usogui.core.database import SessionLocal
from usogui.core.principal import Role
from usogui.core.security import (
    ASSIGNABLE_ROLES,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    CredentialsError,
    check_password,
    check_username,
    hash_password,
    parse_assignable_role,
)
from usogui.models.user import User


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a wiki account (no registration UI).")
    parser.add_argument("username", help=f"Username (1-{USERNAME_MAX_LEN} chars)")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument(
        "role",
        nargs="?",
        default=Role.USER.value,
        help="One of: " + ", ".join(r.value for r in ASSIGNABLE_ROLES),
    )
    parser.add_argument("--email", default=None, help="Optional email address")
    args = parser.parse_args(argv)

    try:
        username = check_username(args.username)
        check_password(args.password)
        role = parse_assignable_role(args.role)
    except CredentialsError as e:
        print(str(e), file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        existing = db.query(User).filter(User.username == username).first()
        if existing:
            print(f"User '{username}' already exists.", file=sys.stderr)
            return 1
        user = User(
            username=username,
            email=args.email,
            password_hash=hash_password(args.password),
            role=role.value,
        )
        db.add(user)
        db.commit()
        print(f"Created user '{username}' with role '{role.value}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
