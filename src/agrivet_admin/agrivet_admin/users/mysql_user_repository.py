from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import AccountStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json
from .model import AccountAuditEntry, UserAccount
from .repository import AccountAuditRepository, UserRepository

_USER_COLUMNS = """
    user_id, email, first_name, last_name, password_hash, role, branch, status,
    created_at, last_login_at
"""

_UPDATABLE = {"email", "first_name", "last_name", "password_hash", "role", "branch"}


def _to_user(row: dict) -> UserAccount:
    return UserAccount(
        user_id=int(row["user_id"]),
        email=row["email"],
        first_name=row.get("first_name") or "",
        last_name=row.get("last_name") or "",
        password_hash=row["password_hash"],
        role=row["role"],
        branch=row.get("branch"),
        status=AccountStatus(row.get("status") or AccountStatus.ACTIVE.value),
        created_at=row.get("created_at"),
        last_login_at=row.get("last_login_at"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[UserAccount]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE user_id=%s", (int(user_id),))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[UserAccount]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE LOWER(email)=LOWER(%s)", (email,))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def list_accounts(self) -> Sequence[UserAccount]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users ORDER BY created_at DESC")
            return [_to_user(r) for r in fetchall(cur)]

    def create(
        self,
        *,
        email: str,
        first_name: str,
        last_name: str,
        password_hash: str,
        role: str,
        branch: Optional[str],
        status: AccountStatus,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(email, first_name, last_name, password_hash, role, branch, status)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (email, first_name, last_name, password_hash, role, branch, status.value),
            )
            return int(cur.lastrowid)

    def update(self, user_id: int, *, changes: dict) -> None:
        unknown = set(changes) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update user columns: {sorted(unknown)}")
        if not changes:
            return

        columns = sorted(changes)
        assignments = ", ".join(f"{c}=%s" for c in columns)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE users SET {assignments} WHERE user_id=%s",
                tuple(changes[c] for c in columns) + (int(user_id),),
            )

    def set_status(self, user_id: int, status: AccountStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET status=%s WHERE user_id=%s", (status.value, int(user_id)))
            return cur.rowcount > 0

    def delete(self, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM users WHERE user_id=%s", (int(user_id),))
            return cur.rowcount > 0

    def touch_last_login(self, user_id: int, at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET last_login_at=%s WHERE user_id=%s", (at, int(user_id)))

    def role_exists(self, role: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT 1 AS found FROM roles WHERE role_id=%s", (role,))
            return fetchone(cur) is not None


class MySQLAccountAuditRepository(AccountAuditRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def add(self, *, user_id: Optional[int], action: str, performed_by: Optional[int], details: dict) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO user_account_audit(user_id, action, performed_by, details)
                VALUES(%s,%s,%s,%s)
                """,
                (user_id, action, performed_by, dump_json(details)),
            )
            return int(cur.lastrowid)

    def list_recent(self, *, limit: int) -> Sequence[AccountAuditEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT audit_id, user_id, action, performed_by, details, created_at
                FROM user_account_audit
                ORDER BY created_at DESC, audit_id DESC
                LIMIT %s
                """,
                (int(limit),),
            )
            return [
                AccountAuditEntry(
                    audit_id=int(r["audit_id"]),
                    user_id=r.get("user_id"),
                    action=r["action"],
                    performed_by=r.get("performed_by"),
                    details=load_json(r.get("details"), {}),
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]
