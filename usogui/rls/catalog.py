"""
Registry of every table under Row-Level Security and the category that decides its policies.

Adding a protected table:
  1. Add a ProtectedTable entry below with the right category (and owner column).
  2. Add a migration that applies usogui.rls.sql.upgrade_statements for it.
  3. Run ``python -m usogui.scripts.check_rls --verify`` against the database.
"""

from dataclasses import dataclass
from enum import Enum


class TableCategory(str, Enum):
    STRICTLY_OWNED = "strictly_owned"
    PUBLIC_CONTENT = "public_content"
    USER_SUBMITTED = "user_submitted"
    JOIN = "join"
    USER_EDGE = "user_edge"
    AUDIT = "audit"


# Categories whose policies compare a column with the caller's id.
OWNED_CATEGORIES = frozenset(
    {TableCategory.STRICTLY_OWNED, TableCategory.USER_SUBMITTED, TableCategory.USER_EDGE}
)


class SubmissionStatus(str, Enum):
    """Moderation state of user-submitted rows; only moderators leave pending."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Status the owner may still edit in (rejected rows can be resubmitted).
OWNER_EDITABLE_STATUSES = (SubmissionStatus.PENDING, SubmissionStatus.REJECTED)


class PolicyCatalogError(Exception):
    """Raised when the table registry cannot produce a consistent policy set."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


@dataclass(frozen=True)
class ProtectedTable:
    name: str
    category: TableCategory
    owner_column: str | None = None


PROTECTED_TABLES: tuple[ProtectedTable, ...] = (
    # Private account and financial data: owner or admin only.
    ProtectedTable("user", TableCategory.STRICTLY_OWNED, "id"),
    ProtectedTable("donation", TableCategory.STRICTLY_OWNED, "userId"),
    # Curated wiki content.
    ProtectedTable("volume", TableCategory.PUBLIC_CONTENT),
    ProtectedTable("character", TableCategory.PUBLIC_CONTENT),
    ProtectedTable("arc", TableCategory.PUBLIC_CONTENT),
    ProtectedTable("gamble", TableCategory.PUBLIC_CONTENT),
    ProtectedTable("chapter", TableCategory.PUBLIC_CONTENT),
    ProtectedTable("organization", TableCategory.PUBLIC_CONTENT),
    ProtectedTable("quote", TableCategory.PUBLIC_CONTENT),
    ProtectedTable("tag", TableCategory.PUBLIC_CONTENT),
    ProtectedTable("badge", TableCategory.PUBLIC_CONTENT),
    # Community submissions moderated through status.
    ProtectedTable("guide", TableCategory.USER_SUBMITTED, "authorId"),
    ProtectedTable("media", TableCategory.USER_SUBMITTED, "submittedById"),
    ProtectedTable("annotation", TableCategory.USER_SUBMITTED, "authorId"),
    ProtectedTable("event", TableCategory.USER_SUBMITTED, "createdById"),
    # Relationship tables.
    ProtectedTable("character_organization", TableCategory.JOIN),
    ProtectedTable("character_relationship", TableCategory.JOIN),
    ProtectedTable("user_badge", TableCategory.JOIN),
    ProtectedTable("page_view", TableCategory.JOIN),
    ProtectedTable("guide_tags", TableCategory.JOIN),
    ProtectedTable("guide_characters", TableCategory.JOIN),
    ProtectedTable("guide_gambles", TableCategory.JOIN),
    ProtectedTable("event_characters_character", TableCategory.JOIN),
    ProtectedTable("gamble_participants_character", TableCategory.JOIN),
    ProtectedTable("guide_like", TableCategory.USER_EDGE, "userId"),
    ProtectedTable("edit_log", TableCategory.AUDIT),
)


def validate_catalog(tables: tuple[ProtectedTable, ...] | list[ProtectedTable]) -> None:
    """Raise PolicyCatalogError for duplicates or owner columns that do not fit the category."""
    seen: set[str] = set()
    for table in tables:
        if table.name in seen:
            raise PolicyCatalogError(f"Table {table.name!r} is registered more than once")
        seen.add(table.name)
        if table.category in OWNED_CATEGORIES and not table.owner_column:
            raise PolicyCatalogError(
                f"Table {table.name!r} ({table.category.value}) needs an owner column"
            )
        if table.category not in OWNED_CATEGORIES and table.owner_column:
            raise PolicyCatalogError(
                f"Table {table.name!r} ({table.category.value}) has no ownership; "
                f"unexpected owner column {table.owner_column!r}"
            )


def get_table(name: str) -> ProtectedTable:
    for table in PROTECTED_TABLES:
        if table.name == name:
            return table
    raise KeyError(name)


def tables_in(category: TableCategory) -> list[ProtectedTable]:
    return [t for t in PROTECTED_TABLES if t.category == category]


validate_catalog(PROTECTED_TABLES)
