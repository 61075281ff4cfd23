"""
Inspect or verify the Row-Level Security policy set. Run from project root:

  python -m usogui.scripts.check_rls            # check generated policies only
  python -m usogui.scripts.check_rls --sql      # print upgrade DDL
  python -m usogui.scripts.check_rls --sql --down
  python -m usogui.scripts.check_rls --verify   # compare with DATABASE_URL, check DB_APP_ROLE

Exit status 1 when the generated set is inconsistent, the database has drifted,
or the request role (DB_APP_ROLE) is unset or misconfigured.
"""

import argparse
import logging
import sys

from usogui.rls import build_policy_set, check_app_role, check_policy_set, diff_live_policies
from usogui.rls.sql import downgrade_statements, upgrade_statements

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Check the generated RLS policy set.")
    parser.add_argument("--sql", action="store_true", help="Print DDL instead of checking")
    parser.add_argument("--down", action="store_true", help="With --sql, print downgrade DDL")
    parser.add_argument("--verify", action="store_true", help="Compare with the live database")
    args = parser.parse_args(argv)

    if args.sql:
        statements = downgrade_statements() if args.down else upgrade_statements()
        for statement in statements:
            print(statement.rstrip(";") + ";\n")
        return 0

    violations = check_policy_set(build_policy_set())
    for violation in violations:
        logger.error("Policy set violation: %s", violation)
    if violations:
        return 1
    logger.info("Generated policy set is consistent")

    if not args.verify:
        return 0

    from usogui.core.config import settings
    from usogui.core.database import engine

    role = settings.DB_APP_ROLE
    try:
        with engine.connect() as connection:
            drift = diff_live_policies(connection)
            role_problems = check_app_role(connection, role) if role else []
    except Exception as e:
        logger.exception("RLS verification failed: %s", e)
        return 1
    for table, policy in drift.missing:
        logger.error("Missing policy %s on %s", policy, table)
    for table, policy in drift.unexpected:
        logger.error("Unexpected policy %s on %s", policy, table)
    for table, policy in drift.wrong_command:
        logger.error("Policy %s on %s has the wrong command", policy, table)
    for table in drift.rls_disabled:
        logger.error("RLS is disabled on %s", table)
    for problem in role_problems:
        logger.error("Request role: %s", problem)
    if role is None:
        logger.error("DB_APP_ROLE is not set; requests run as the table owner and bypass RLS")
    if not drift.clean or role_problems or role is None:
        return 1
    logger.info("Database policies match the generated set and %s is a valid request role", role)
    return 0


if __name__ == "__main__":
    sys.exit(main())
