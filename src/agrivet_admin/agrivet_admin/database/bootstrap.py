from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import mysql.connector
from werkzeug.security import generate_password_hash

from ..core.constants import SUPER_ADMIN_ROLE
from ..permissions.model import BASELINE_MATRIX, PermissionMatrix

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DBTarget:
    host: str
    port: int
    user: str
    password: str
    database: str


@dataclass(frozen=True)
class SystemRole:
    role_id: str
    display_name: str
    description: str
    scope: str
    matrix: PermissionMatrix


SYSTEM_ROLES = (
    SystemRole(SUPER_ADMIN_ROLE, "Super Admin", "Unrestricted access to every module", "global", PermissionMatrix.full()),
    SystemRole(
        "admin",
        "Administrator",
        "Runs a branch: staff, sales, reports and marketing",
        "global",
        PermissionMatrix.of(
            ("dashboard", "read"),
            ("inventory", "read"),
            ("inventory", "update"),
            ("sales", "read"),
            ("sales", "export"),
            ("reports", "read"),
            ("reports", "export"),
            ("staff", "read"),
            ("staff", "create"),
            ("staff", "update"),
            ("staff", "export"),
            ("marketing", "read"),
            ("marketing", "create"),
            ("marketing", "update"),
            ("marketing", "delete"),
            ("settings", "read"),
        ),
    ),
    SystemRole("cashier", "Cashier", "Point-of-sale counter staff", "branch", BASELINE_MATRIX),
)

DEMO_USERS = (
    ("superadmin@agrivet.test", "Super", "Admin", "superadmin123", SUPER_ADMIN_ROLE, None),
    ("admin@agrivet.test", "Branch", "Admin", "admin12345", "admin", "Main Branch"),
    ("cashier@agrivet.test", "Maria", "Santos", "cashier123", "cashier", "Main Branch"),
)


def _as_target(db_config: dict) -> DBTarget:
    return DBTarget(
        host=str(db_config.get("host", "localhost")),
        port=int(db_config.get("port", 3306)),
        user=str(db_config.get("user", "root")),
        password=str(db_config.get("password", "")),
        database=str(db_config.get("database", "agrivet_admin")),
    )


def _connect(target: DBTarget, *, with_database: bool = True):
    kwargs = dict(host=target.host, port=target.port, user=target.user, password=target.password, use_pure=True)
    if with_database:
        kwargs["database"] = target.database
    return mysql.connector.connect(**kwargs)


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql compatible regardless of DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _strip_comments(sql: str) -> str:
    return re.sub(r"(?m)^\s*--.*$", "", sql)


def iter_sql_statements(sql: str) -> Iterable[str]:
    # Minimal SQL splitter for schema/seed files (handles ';' inside quotes).
    buf: list[str] = []
    in_single = False
    in_double = False
    escape = False

    for ch in _strip_comments(sql):
        if escape:
            buf.append(ch)
            escape = False
            continue

        if ch == "\\":
            buf.append(ch)
            escape = True
            continue

        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        elif ch == ";" and not in_single and not in_double:
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue

        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def _run_file(db_config: dict, path: str | Path) -> int:
    target = _as_target(db_config)
    sql = _strip_create_db_and_use(Path(path).read_text(encoding="utf-8"))

    conn = _connect(target)
    try:
        cur = conn.cursor()
        count = 0
        for stmt in iter_sql_statements(sql):
            cur.execute(stmt)
            count += 1
        conn.commit()
        return count
    finally:
        conn.close()


def ensure_database_exists(db_config: dict) -> None:
    target = _as_target(db_config)
    conn = _connect(target, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    count = _run_file(db_config, schema_path)
    logger.info("Applied %s statements from %s", count, schema_path)


def apply_seed_sql(db_config: dict, *, seed_path: str | Path) -> None:
    count = _run_file(db_config, seed_path)
    logger.info("Applied %s statements from %s", count, seed_path)


def ensure_default_roles(cur) -> None:
    """Insert the system roles; an existing grid is left as the admins edited it."""
    for role in SYSTEM_ROLES:
        cur.execute(
            """
            INSERT IGNORE INTO roles(role_id, display_name, description, scope, is_system)
            VALUES(%s,%s,%s,%s,1)
            """,
            (role.role_id, role.display_name, role.description, role.scope),
        )
        cur.executemany(
            """
            INSERT IGNORE INTO role_permissions(role_id, module, action, granted)
            VALUES(%s,%s,%s,%s)
            """,
            [(role.role_id, m.value, a.value, 1 if granted else 0) for m, a, granted in role.matrix.cells()],
        )


def ensure_demo_users(db_config: dict) -> None:
    conn = _connect(_as_target(db_config))
    try:
        cur = conn.cursor(dictionary=True)
        ensure_default_roles(cur)

        for email, first_name, last_name, password, role, branch in DEMO_USERS:
            password_hash = generate_password_hash(password)
            cur.execute("SELECT user_id FROM users WHERE email=%s", (email,))
            if cur.fetchone():
                cur.execute(
                    """
                    UPDATE users
                    SET first_name=%s, last_name=%s, password_hash=%s, role=%s, branch=%s, status='active'
                    WHERE email=%s
                    """,
                    (first_name, last_name, password_hash, role, branch, email),
                )
            else:
                cur.execute(
                    """
                    INSERT INTO users(email, first_name, last_name, password_hash, role, branch)
                    VALUES(%s,%s,%s,%s,%s,%s)
                    """,
                    (email, first_name, last_name, password_hash, role, branch),
                )

        # The cashier account doubles as the first staff member's login
        cur.execute(
            """
            UPDATE staff s JOIN users u ON u.email=%s
            SET s.user_id = u.user_id
            WHERE s.employee_code='EMP-0001' AND s.user_id IS NULL
            """,
            ("cashier@agrivet.test",),
        )

        conn.commit()
        logger.info("Demo roles and accounts ready (%s accounts)", len(DEMO_USERS))
    finally:
        conn.close()


def list_tables(db_config: dict) -> list[str]:
    conn = _connect(_as_target(db_config))
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
