from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import WhereBuilder, db_cursor, fetchall, fetchone
from .model import ActivityEvent, UserSession
from .repository import ActivityRepository, SessionRepository


class MySQLActivityRepository(ActivityRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def record(
        self,
        *,
        user_email: str,
        user_name: str,
        role: Optional[str],
        branch: Optional[str],
        module: str,
        action: str,
        details: Optional[str],
        ip_address: Optional[str],
        device: Optional[str],
        created_at: datetime,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO user_activity(
                    user_email, user_name, role, branch, module, action, details, ip_address, device, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (user_email, user_name, role, branch, module, action, details, ip_address, device, created_at),
            )
            return int(cur.lastrowid)

    def list_events(
        self,
        *,
        role: Optional[str] = None,
        module: Optional[str] = None,
        action: Optional[str] = None,
        branch: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 500,
    ) -> Sequence[ActivityEvent]:
        where = (
            WhereBuilder()
            .add_if(role, "role=%s")
            .add_if(module, "module=%s")
            .add_if(action, "action=%s")
            .add_if(branch, "branch=%s")
            .add_if(start, "created_at >= %s")
            .add_if(end, "created_at < %s")
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT event_id, user_email, user_name, role, branch, module, action,
                       details, ip_address, device, created_at
                FROM user_activity
                WHERE {where.sql}
                ORDER BY created_at DESC, event_id DESC
                LIMIT %s
                """,
                tuple(where.params + [int(limit)]),
            )
            return [
                ActivityEvent(
                    event_id=int(r["event_id"]),
                    user_email=r["user_email"],
                    user_name=r.get("user_name") or r["user_email"],
                    role=r.get("role"),
                    branch=r.get("branch"),
                    module=r["module"],
                    action=r["action"],
                    details=r.get("details"),
                    ip_address=r.get("ip_address"),
                    device=r.get("device"),
                    created_at=r["created_at"],
                )
                for r in fetchall(cur)
            ]


def _to_session(r: dict) -> UserSession:
    return UserSession(
        session_id=r["session_id"],
        user_id=int(r["user_id"]),
        user_email=r["user_email"],
        user_name=r.get("user_name") or r["user_email"],
        ip_address=r.get("ip_address"),
        device=r.get("device"),
        started_at=r["started_at"],
        last_seen_at=r["last_seen_at"],
        is_revoked=bool(r.get("is_revoked")),
    )


_SESSION_COLUMNS = "session_id, user_id, user_email, user_name, ip_address, device, started_at, last_seen_at, is_revoked"


class MySQLSessionRepository(SessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, session: UserSession) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO user_sessions(
                    session_id, user_id, user_email, user_name, ip_address, device, started_at, last_seen_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    session.session_id,
                    int(session.user_id),
                    session.user_email,
                    session.user_name,
                    session.ip_address,
                    session.device,
                    session.started_at,
                    session.last_seen_at,
                ),
            )

    def get(self, session_id: str) -> Optional[UserSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SESSION_COLUMNS} FROM user_sessions WHERE session_id=%s", (session_id,))
            row = fetchone(cur)
            return _to_session(row) if row else None

    def list_open(self) -> Sequence[UserSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM user_sessions
                WHERE is_revoked=0
                ORDER BY last_seen_at DESC
                """
            )
            return [_to_session(r) for r in fetchall(cur)]

    def touch(self, session_id: str, at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE user_sessions SET last_seen_at=%s WHERE session_id=%s AND is_revoked=0",
                (at, session_id),
            )
            if cur.rowcount > 0:
                return True
            # rowcount is 0 when last_seen_at did not change within the same second
            cur.execute("SELECT 1 AS found FROM user_sessions WHERE session_id=%s AND is_revoked=0", (session_id,))
            return fetchone(cur) is not None

    def revoke(self, session_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE user_sessions SET is_revoked=1 WHERE session_id=%s AND is_revoked=0", (session_id,))
            return cur.rowcount > 0

    def revoke_for_user(self, user_email: str, *, keep_session_id: Optional[str] = None) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE user_sessions SET is_revoked=1
                WHERE user_email=%s AND is_revoked=0 AND session_id <> %s
                """,
                (user_email, keep_session_id or ""),
            )
            return int(cur.rowcount)
