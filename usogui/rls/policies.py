"""
Policy templates per table category.

Each category maps to a fixed list of permissive policies. Predicates reference
the auth.* helper functions from usogui.rls.sql, never raw claim settings, so
role casing and claim parsing live in exactly one place.
"""

from dataclasses import dataclass
from enum import Enum

from usogui.rls.catalog import (
    OWNER_EDITABLE_STATUSES,
    PROTECTED_TABLES,
    PolicyCatalogError,
    ProtectedTable,
    SubmissionStatus,
    TableCategory,
)

USER_ID = "auth.user_id()"
IS_PRIVILEGED = "auth.is_admin_or_moderator()"
IS_SUPERUSER = "auth.is_admin()"


class Command(str, Enum):
    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    ALL = "ALL"


class Audience(str, Enum):
    """Who a policy admits; used to check policies against the category matrix."""

    EVERYONE = "everyone"
    PUBLISHED = "published"  # everyone, approved rows only
    OWNER = "owner"
    PRIVILEGED = "privileged"  # admin or moderator
    SUPERUSER = "superuser"  # admin


@dataclass(frozen=True)
class Policy:
    name: str
    table: str
    command: Command
    audiences: frozenset[Audience]
    using: str | None = None
    with_check: str | None = None


def quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _status_in(statuses: tuple[SubmissionStatus, ...]) -> str:
    return "status IN (" + ", ".join(_literal(s.value) for s in statuses) + ")"


def _owned(table: ProtectedTable) -> str:
    if not table.owner_column:
        raise PolicyCatalogError(f"Table {table.name!r} has no owner column")
    return f"{quote_ident(table.owner_column)} = {USER_ID}"


def _privileged_writes(table: ProtectedTable) -> list[Policy]:
    t = table.name
    everyone_reads = Policy(
        f"{t}_select_all", t, Command.SELECT, frozenset({Audience.EVERYONE}), using="true"
    )
    return [
        everyone_reads,
        Policy(
            f"{t}_insert_privileged", t, Command.INSERT,
            frozenset({Audience.PRIVILEGED}), with_check=IS_PRIVILEGED,
        ),
        Policy(
            f"{t}_update_privileged", t, Command.UPDATE,
            frozenset({Audience.PRIVILEGED}), using=IS_PRIVILEGED, with_check=IS_PRIVILEGED,
        ),
        Policy(
            f"{t}_delete_privileged", t, Command.DELETE,
            frozenset({Audience.PRIVILEGED}), using=IS_PRIVILEGED,
        ),
    ]


def _strictly_owned(table: ProtectedTable) -> list[Policy]:
    t = table.name
    owned = _owned(table)
    # No INSERT policy: these rows are created by the system connection.
    return [
        Policy(
            f"{t}_select_own", t, Command.SELECT,
            frozenset({Audience.OWNER, Audience.SUPERUSER}),
            using=f"{owned} OR {IS_SUPERUSER}",
        ),
        Policy(
            f"{t}_update_own", t, Command.UPDATE,
            frozenset({Audience.OWNER}), using=owned, with_check=owned,
        ),
        Policy(
            f"{t}_update_admin", t, Command.UPDATE,
            frozenset({Audience.SUPERUSER}), using=IS_SUPERUSER, with_check=IS_SUPERUSER,
        ),
        Policy(
            f"{t}_delete_admin", t, Command.DELETE,
            frozenset({Audience.SUPERUSER}), using=IS_SUPERUSER,
        ),
    ]


def _user_submitted(table: ProtectedTable) -> list[Policy]:
    t = table.name
    owned = _owned(table)
    approved = f"status = {_literal(SubmissionStatus.APPROVED.value)}"
    pending = f"status = {_literal(SubmissionStatus.PENDING.value)}"
    owner_editable = f"{owned} AND {_status_in(OWNER_EDITABLE_STATUSES)}"
    return [
        Policy(
            f"{t}_select", t, Command.SELECT,
            frozenset({Audience.PUBLISHED, Audience.OWNER, Audience.PRIVILEGED}),
            using=f"{approved} OR {owned} OR {IS_PRIVILEGED}",
        ),
        # Owners can only create pending rows for themselves; nobody inserts on another's behalf.
        Policy(
            f"{t}_insert_own", t, Command.INSERT,
            frozenset({Audience.OWNER}),
            with_check=f"{USER_ID} IS NOT NULL AND {owned} AND {pending}",
        ),
        # WITH CHECK keeps the status gate so an owner cannot approve their own row.
        Policy(
            f"{t}_update_own", t, Command.UPDATE,
            frozenset({Audience.OWNER}), using=owner_editable, with_check=owner_editable,
        ),
        Policy(
            f"{t}_update_privileged", t, Command.UPDATE,
            frozenset({Audience.PRIVILEGED}), using=IS_PRIVILEGED, with_check=IS_PRIVILEGED,
        ),
        Policy(
            f"{t}_delete_own_pending", t, Command.DELETE,
            frozenset({Audience.OWNER}), using=f"{owned} AND {pending}",
        ),
        Policy(
            f"{t}_delete_privileged", t, Command.DELETE,
            frozenset({Audience.PRIVILEGED}), using=IS_PRIVILEGED,
        ),
    ]


def _user_edge(table: ProtectedTable) -> list[Policy]:
    t = table.name
    owned = _owned(table)
    return [
        Policy(f"{t}_select_all", t, Command.SELECT, frozenset({Audience.EVERYONE}), using="true"),
        Policy(
            f"{t}_insert_own", t, Command.INSERT,
            frozenset({Audience.OWNER}), with_check=f"{USER_ID} IS NOT NULL AND {owned}",
        ),
        Policy(
            f"{t}_update_own", t, Command.UPDATE,
            frozenset({Audience.OWNER}), using=owned, with_check=owned,
        ),
        Policy(f"{t}_delete_own", t, Command.DELETE, frozenset({Audience.OWNER}), using=owned),
        Policy(
            f"{t}_delete_admin", t, Command.DELETE,
            frozenset({Audience.SUPERUSER}), using=IS_SUPERUSER,
        ),
    ]


def _audit(table: ProtectedTable) -> list[Policy]:
    t = table.name
    # Entries are written by the system connection only.
    return [
        Policy(
            f"{t}_select_privileged", t, Command.SELECT,
            frozenset({Audience.PRIVILEGED}), using=IS_PRIVILEGED,
        ),
        Policy(
            f"{t}_delete_admin", t, Command.DELETE,
            frozenset({Audience.SUPERUSER}), using=IS_SUPERUSER,
        ),
    ]


CATEGORY_TEMPLATES = {
    TableCategory.STRICTLY_OWNED: _strictly_owned,
    TableCategory.PUBLIC_CONTENT: _privileged_writes,
    TableCategory.USER_SUBMITTED: _user_submitted,
    TableCategory.JOIN: _privileged_writes,
    TableCategory.USER_EDGE: _user_edge,
    TableCategory.AUDIT: _audit,
}


def policies_for(table: ProtectedTable) -> list[Policy]:
    """Concrete policies for one table, in creation order."""
    template = CATEGORY_TEMPLATES.get(table.category)
    if template is None:
        raise PolicyCatalogError(f"No policy template for category {table.category!r}")
    return template(table)


def build_policy_set(tables: tuple[ProtectedTable, ...] | list[ProtectedTable] = PROTECTED_TABLES) -> list[Policy]:
    """All policies for the given tables, ordered by table then template order."""
    policies: list[Policy] = []
    for table in tables:
        policies.extend(policies_for(table))
    return policies
