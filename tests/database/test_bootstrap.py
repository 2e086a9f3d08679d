from __future__ import annotations

from pathlib import Path

from src.agrivet_admin.agrivet_admin.core.constants import SUPER_ADMIN_ROLE
from src.agrivet_admin.agrivet_admin.core.enums import PermissionAction, PermissionModule
from src.agrivet_admin.agrivet_admin.database.bootstrap import SYSTEM_ROLES, iter_sql_statements

REPO_ROOT = Path(__file__).resolve().parents[2]


def test_splitter_keeps_semicolons_inside_quotes_and_drops_comments():
    sql = """
    -- header comment
    INSERT INTO t(a) VALUES ('x;y');
    INSERT INTO t(a) VALUES ("it's");
    UPDATE t SET a='\\';' WHERE 1
    """

    statements = list(iter_sql_statements(sql))

    assert statements == [
        "INSERT INTO t(a) VALUES ('x;y')",
        "INSERT INTO t(a) VALUES (\"it's\")",
        "UPDATE t SET a='\\';' WHERE 1",
    ]


def test_schema_creates_every_table_the_repositories_use():
    schema = (REPO_ROOT / "database" / "schema.sql").read_text(encoding="utf-8")
    created = {s.split()[5] for s in iter_sql_statements(schema) if s.upper().startswith("CREATE TABLE")}

    assert {
        "roles",
        "role_permissions",
        "users",
        "user_account_audit",
        "user_activity",
        "user_sessions",
        "staff",
        "attendance_records",
        "leave_requests",
        "pos_transactions",
        "pos_transaction_items",
        "products",
        "categories",
        "customers",
        "branches",
        "marketing_campaigns",
        "campaign_templates",
        "campaign_events",
        "marketing_audit_logs",
    } <= created


def test_system_roles_include_unrestricted_super_admin():
    by_id = {r.role_id: r for r in SYSTEM_ROLES}

    assert by_id[SUPER_ADMIN_ROLE].matrix.allows(PermissionModule.SETTINGS, PermissionAction.DELETE)
    assert not by_id["cashier"].matrix.allows(PermissionModule.MARKETING, PermissionAction.READ)
