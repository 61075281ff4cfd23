"""DDL rendering for the RLS helper functions and the generated policy set."""

from collections.abc import Collection

from usogui.rls.catalog import PROTECTED_TABLES, ProtectedTable
from usogui.rls.policies import Policy, policies_for, quote_ident

AUTH_SCHEMA = "auth"
CLAIMS_SETTING = "request.jwt.claims"

_CLAIMS_JSON = f"NULLIF(current_setting('{CLAIMS_SETTING}', true), '')::json"

# (name, definition); created in this order, dropped in reverse.
HELPER_FUNCTIONS: tuple[tuple[str, str], ...] = (
    (
        "auth.user_id()",
        f"""
CREATE OR REPLACE FUNCTION auth.user_id() RETURNS INTEGER AS $$
  SELECT CASE
    WHEN claims.sub ~ '^[1-9][0-9]{{0,8}}$' THEN claims.sub::integer
  END
  FROM (SELECT {_CLAIMS_JSON} ->> 'sub' AS sub) AS claims;
$$ LANGUAGE SQL STABLE
""".strip(),
    ),
    (
        "auth.user_role()",
        f"""
CREATE OR REPLACE FUNCTION auth.user_role() RETURNS TEXT AS $$
  SELECT COALESCE(lower(btrim({_CLAIMS_JSON} ->> 'role')), 'anon');
$$ LANGUAGE SQL STABLE
""".strip(),
    ),
    (
        "auth.is_admin_or_moderator()",
        """
CREATE OR REPLACE FUNCTION auth.is_admin_or_moderator() RETURNS BOOLEAN AS $$
  SELECT auth.user_role() IN ('admin', 'moderator');
$$ LANGUAGE SQL STABLE
""".strip(),
    ),
    (
        "auth.is_admin()",
        """
CREATE OR REPLACE FUNCTION auth.is_admin() RETURNS BOOLEAN AS $$
  SELECT auth.user_role() = 'admin';
$$ LANGUAGE SQL STABLE
""".strip(),
    ),
)


def create_policy_sql(policy: Policy) -> str:
    lines = [
        f"CREATE POLICY {quote_ident(policy.name)} ON {quote_ident(policy.table)}",
        f"    FOR {policy.command.value}",
    ]
    if policy.using is not None:
        lines.append(f"    USING ({policy.using})")
    if policy.with_check is not None:
        lines.append(f"    WITH CHECK ({policy.with_check})")
    return "\n".join(lines)


def drop_policy_sql(policy: Policy) -> str:
    return f"DROP POLICY IF EXISTS {quote_ident(policy.name)} ON {quote_ident(policy.table)}"


def enable_rls_sql(table: str) -> str:
    return f"ALTER TABLE {quote_ident(table)} ENABLE ROW LEVEL SECURITY"


def disable_rls_sql(table: str) -> str:
    return f"ALTER TABLE {quote_ident(table)} DISABLE ROW LEVEL SECURITY"


def _present(
    tables: Collection[ProtectedTable], existing_tables: Collection[str] | None
) -> list[ProtectedTable]:
    if existing_tables is None:
        return list(tables)
    return [t for t in tables if t.name in existing_tables]


def helper_function_statements() -> list[str]:
    return [f"CREATE SCHEMA IF NOT EXISTS {AUTH_SCHEMA}"] + [ddl for _, ddl in HELPER_FUNCTIONS]


def upgrade_statements(
    existing_tables: Collection[str] | None = None,
    tables: Collection[ProtectedTable] = PROTECTED_TABLES,
) -> list[str]:
    """
    Statements that install helpers and enable RLS with the generated policies.

    Tables missing from ``existing_tables`` are skipped. Each policy is dropped
    before it is created so a re-run converges to the same set.
    """
    statements = helper_function_statements()
    for table in _present(tables, existing_tables):
        statements.append(enable_rls_sql(table.name))
        for policy in policies_for(table):
            statements.append(drop_policy_sql(policy))
            statements.append(create_policy_sql(policy))
    return statements


def downgrade_statements(
    existing_tables: Collection[str] | None = None,
    tables: Collection[ProtectedTable] = PROTECTED_TABLES,
) -> list[str]:
    """Inverse of upgrade_statements: drop generated policies, disable RLS, drop helpers."""
    statements: list[str] = []
    for table in reversed(_present(tables, existing_tables)):
        for policy in reversed(policies_for(table)):
            statements.append(drop_policy_sql(policy))
        statements.append(disable_rls_sql(table.name))
    for name, _ in reversed(HELPER_FUNCTIONS):
        statements.append(f"DROP FUNCTION IF EXISTS {name}")
    return statements


def _role_literal(role: str) -> str:
    return "'" + role.replace("'", "''") + "'"


def app_role_statements(
    role: str,
    existing_tables: Collection[str] | None = None,
    tables: Collection[ProtectedTable] = PROTECTED_TABLES,
) -> list[str]:
    """
    Create the request role if missing and grant it what principal-bound sessions need.

    The role never logs in: the connecting (owner) role is made a member so
    ``SET LOCAL ROLE`` can switch to it per transaction. It must not be a
    superuser or carry BYPASSRLS, or every policy would be skipped.
    """
    r = quote_ident(role)
    name = _role_literal(role)
    statements = [
        f"""
DO $$
BEGIN
  IF NOT EXISTS (SELECT FROM pg_roles WHERE rolname = {name}) THEN
    CREATE ROLE {r} NOLOGIN NOBYPASSRLS;
  END IF;
  IF (SELECT rolsuper OR rolbypassrls FROM pg_roles WHERE rolname = {name}) THEN
    RAISE EXCEPTION 'request role must not be a superuser or bypass row level security';
  END IF;
END
$$
""".strip(),
        f"GRANT {r} TO CURRENT_USER",
        f"GRANT USAGE ON SCHEMA public, {AUTH_SCHEMA} TO {r}",
        f"GRANT EXECUTE ON ALL FUNCTIONS IN SCHEMA {AUTH_SCHEMA} TO {r}",
        f"GRANT USAGE, SELECT ON ALL SEQUENCES IN SCHEMA public TO {r}",
    ]
    for table in _present(tables, existing_tables):
        statements.append(f"GRANT SELECT, INSERT, UPDATE, DELETE ON {quote_ident(table.name)} TO {r}")
    return statements


def revoke_app_role_statements(
    role: str,
    existing_tables: Collection[str] | None = None,
    tables: Collection[ProtectedTable] = PROTECTED_TABLES,
) -> list[str]:
    """Inverse of app_role_statements, except the role itself is kept (it may be shared)."""
    r = quote_ident(role)
    statements = [
        f"REVOKE SELECT, INSERT, UPDATE, DELETE ON {quote_ident(table.name)} FROM {r}"
        for table in reversed(_present(tables, existing_tables))
    ]
    statements += [
        f"REVOKE USAGE, SELECT ON ALL SEQUENCES IN SCHEMA public FROM {r}",
        f"REVOKE EXECUTE ON ALL FUNCTIONS IN SCHEMA {AUTH_SCHEMA} FROM {r}",
        f"REVOKE USAGE ON SCHEMA public, {AUTH_SCHEMA} FROM {r}",
    ]
    return statements
