"""
Mechanical checks that every protected table has a complete, category-consistent policy set.

``check_policy_set`` validates generated policies against the access matrix below,
which restates the per-category rules independently of the templates.
``diff_live_policies`` compares a database's pg_policies with the generated set.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field

from sqlalchemy import text
from sqlalchemy.engine import Connection

from usogui.rls.catalog import PROTECTED_TABLES, ProtectedTable, TableCategory
from usogui.rls.policies import USER_ID, Audience, Command, Policy, build_policy_set, quote_ident

logger = logging.getLogger(__name__)

MAX_IDENTIFIER_LEN = 63

_A = Audience
# Exactly who each command must admit, per category. A command absent here must have no policy.
ACCESS_MATRIX: dict[TableCategory, dict[Command, frozenset[Audience]]] = {
    TableCategory.STRICTLY_OWNED: {
        Command.SELECT: frozenset({_A.OWNER, _A.SUPERUSER}),
        Command.UPDATE: frozenset({_A.OWNER, _A.SUPERUSER}),
        Command.DELETE: frozenset({_A.SUPERUSER}),
    },
    TableCategory.PUBLIC_CONTENT: {
        Command.SELECT: frozenset({_A.EVERYONE}),
        Command.INSERT: frozenset({_A.PRIVILEGED}),
        Command.UPDATE: frozenset({_A.PRIVILEGED}),
        Command.DELETE: frozenset({_A.PRIVILEGED}),
    },
    TableCategory.USER_SUBMITTED: {
        Command.SELECT: frozenset({_A.PUBLISHED, _A.OWNER, _A.PRIVILEGED}),
        Command.INSERT: frozenset({_A.OWNER}),
        Command.UPDATE: frozenset({_A.OWNER, _A.PRIVILEGED}),
        Command.DELETE: frozenset({_A.OWNER, _A.PRIVILEGED}),
    },
    TableCategory.JOIN: {
        Command.SELECT: frozenset({_A.EVERYONE}),
        Command.INSERT: frozenset({_A.PRIVILEGED}),
        Command.UPDATE: frozenset({_A.PRIVILEGED}),
        Command.DELETE: frozenset({_A.PRIVILEGED}),
    },
    TableCategory.USER_EDGE: {
        Command.SELECT: frozenset({_A.EVERYONE}),
        Command.INSERT: frozenset({_A.OWNER}),
        Command.UPDATE: frozenset({_A.OWNER}),
        Command.DELETE: frozenset({_A.OWNER, _A.SUPERUSER}),
    },
    TableCategory.AUDIT: {
        Command.SELECT: frozenset({_A.PRIVILEGED}),
        Command.DELETE: frozenset({_A.SUPERUSER}),
    },
}

_CONCRETE = (Command.SELECT, Command.INSERT, Command.UPDATE, Command.DELETE)


def _covers(policy: Policy, command: Command) -> bool:
    return policy.command == command or policy.command == Command.ALL


def _check_table(table: ProtectedTable, policies: list[Policy]) -> list[str]:
    violations: list[str] = []
    expected = ACCESS_MATRIX[table.category]
    name = table.name

    if not any(_covers(p, Command.SELECT) for p in policies):
        violations.append(f"{name}: RLS enabled without a SELECT policy")

    for command in _CONCRETE:
        granted: set[Audience] = set()
        for p in policies:
            if _covers(p, command):
                granted |= p.audiences
        wanted = expected.get(command, frozenset())
        if wanted and not granted:
            violations.append(f"{name}: {command.value} permitted but no policy defined")
        elif granted != wanted:
            extra = sorted(a.value for a in granted - wanted)
            missing = sorted(a.value for a in wanted - granted)
            violations.append(
                f"{name}: {command.value} audience mismatch (extra={extra}, missing={missing})"
            )

    for p in policies:
        if len(p.name) > MAX_IDENTIFIER_LEN:
            violations.append(f"{name}: policy name {p.name!r} exceeds {MAX_IDENTIFIER_LEN} chars")
        if p.command in (Command.SELECT, Command.DELETE) and p.with_check is not None:
            violations.append(f"{name}: {p.name} has WITH CHECK on {p.command.value}")
        if p.command == Command.INSERT and p.using is not None:
            violations.append(f"{name}: {p.name} has USING on INSERT")
        if p.command != Command.INSERT and p.using is None:
            violations.append(f"{name}: {p.name} has no USING clause")
        if _covers(p, Command.INSERT) and Audience.OWNER in p.audiences:
            owner_check = f"{quote_ident(table.owner_column or '')} = {USER_ID}"
            if not p.with_check or owner_check not in p.with_check:
                violations.append(f"{name}: {p.name} allows INSERT without {owner_check}")
            elif f"{USER_ID} IS NOT NULL" not in p.with_check:
                violations.append(f"{name}: {p.name} allows anonymous INSERT")
    return violations


def check_policy_set(
    policies: list[Policy],
    tables: tuple[ProtectedTable, ...] | list[ProtectedTable] = PROTECTED_TABLES,
) -> list[str]:
    """Return human-readable violations; an empty list means the set is consistent."""
    by_table: dict[str, list[Policy]] = defaultdict(list)
    for p in policies:
        by_table[p.table].append(p)

    known = {t.name for t in tables}
    violations = [f"{name}: policies defined for an unregistered table" for name in by_table if name not in known]

    for table in tables:
        table_policies = by_table.get(table.name, [])
        names = [p.name for p in table_policies]
        for dup in sorted({n for n in names if names.count(n) > 1}):
            violations.append(f"{table.name}: duplicate policy name {dup!r}")
        violations.extend(_check_table(table, table_policies))
    return violations


@dataclass
class PolicyDrift:
    """Difference between the generated policy set and what a database has installed."""

    missing: list[tuple[str, str]] = field(default_factory=list)
    unexpected: list[tuple[str, str]] = field(default_factory=list)
    wrong_command: list[tuple[str, str]] = field(default_factory=list)
    rls_disabled: list[str] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not (self.missing or self.unexpected or self.wrong_command or self.rls_disabled)


def diff_live_policies(
    connection: Connection,
    tables: tuple[ProtectedTable, ...] | list[ProtectedTable] = PROTECTED_TABLES,
) -> PolicyDrift:
    """
    Compare installed policies (names, commands) and RLS flags on existing
    protected tables with the generated set. Tables that do not exist are skipped.
    """
    rls_flags = {
        row.relname: row.relrowsecurity
        for row in connection.execute(
            text(
                "SELECT c.relname, c.relrowsecurity FROM pg_class c "
                "JOIN pg_namespace n ON n.oid = c.relnamespace "
                "WHERE n.nspname = 'public' AND c.relkind IN ('r', 'p')"
            )
        )
    }
    live: dict[tuple[str, str], str] = {
        (row.tablename, row.policyname): row.cmd
        for row in connection.execute(
            text("SELECT tablename, policyname, cmd FROM pg_policies WHERE schemaname = 'public'")
        )
    }

    present = [t for t in tables if t.name in rls_flags]
    expected = {(p.table, p.name): p.command.value for p in build_policy_set(present)}
    present_names = {t.name for t in present}

    drift = PolicyDrift()
    for table in present:
        if not rls_flags[table.name]:
            drift.rls_disabled.append(table.name)
    for key, command in sorted(expected.items()):
        if key not in live:
            drift.missing.append(key)
        elif live[key] != command:
            drift.wrong_command.append(key)
    for key in sorted(live):
        if key[0] in present_names and key not in expected:
            drift.unexpected.append(key)

    if not drift.clean:
        logger.warning(
            "RLS policy drift detected",
            extra={
                "missing": len(drift.missing),
                "unexpected": len(drift.unexpected),
                "wrong_command": len(drift.wrong_command),
                "rls_disabled": len(drift.rls_disabled),
            },
        )
    return drift


_DML = ("SELECT", "INSERT", "UPDATE", "DELETE")


def check_app_role(
    connection: Connection,
    role: str,
    tables: tuple[ProtectedTable, ...] | list[ProtectedTable] = PROTECTED_TABLES,
) -> list[str]:
    """
    Problems that would let requests switched to ``role`` skip RLS or fail:
    the role is missing, is a superuser or BYPASSRLS, cannot be assumed by the
    connecting user, owns a protected table, or lacks DML on one.
    """
    row = connection.execute(
        text(
            "SELECT rolsuper, rolbypassrls, pg_has_role(current_user, oid, 'MEMBER') AS can_switch "
            "FROM pg_roles WHERE rolname = :role"
        ),
        {"role": role},
    ).first()
    if row is None:
        return [f"role {role!r} does not exist"]

    problems: list[str] = []
    if row.rolsuper or row.rolbypassrls:
        problems.append(f"role {role!r} is a superuser or has BYPASSRLS")
    if not row.can_switch:
        problems.append(f"current user cannot SET ROLE {role!r}")

    privileges = ", ".join(
        f"has_table_privilege(:role, c.oid, '{p}') AS can_{p.lower()}" for p in _DML
    )
    rows = connection.execute(
        text(
            f"SELECT c.relname, pg_get_userbyid(c.relowner) AS owner, {privileges} "
            "FROM pg_class c JOIN pg_namespace n ON n.oid = c.relnamespace "
            "WHERE n.nspname = 'public' AND c.relkind IN ('r', 'p')"
        ),
        {"role": role},
    )
    live = {r.relname: r for r in rows}
    for table in tables:
        info = live.get(table.name)
        if info is None:
            continue
        if info.owner == role:
            problems.append(f"{table.name}: owned by {role!r}, so RLS does not apply to it")
        lacking = [p for p in _DML if not getattr(info, "can_" + p.lower())]
        if lacking:
            problems.append(f"{table.name}: {role!r} lacks {', '.join(lacking)}")

    if problems:
        logger.warning("Request role misconfigured", extra={"role": role, "problems": len(problems)})
    return problems
