"""Row-Level Security: table registry, generated policies, DDL and verification."""

from usogui.rls.catalog import (
    PROTECTED_TABLES,
    PolicyCatalogError,
    ProtectedTable,
    SubmissionStatus,
    TableCategory,
)
from usogui.rls.policies import Audience, Command, Policy, build_policy_set, policies_for
from usogui.rls.sql import app_role_statements, downgrade_statements, upgrade_statements
from usogui.rls.verify import PolicyDrift, check_app_role, check_policy_set, diff_live_policies

__all__ = [
    "Audience",
    "Command",
    "PROTECTED_TABLES",
    "Policy",
    "PolicyCatalogError",
    "PolicyDrift",
    "ProtectedTable",
    "SubmissionStatus",
    "TableCategory",
    "app_role_statements",
    "build_policy_set",
    "check_app_role",
    "check_policy_set",
    "diff_live_policies",
    "downgrade_statements",
    "policies_for",
    "upgrade_statements",
]
