from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import LeaveStatus, LeaveType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import LeaveRequest, LeaveRowView
from .repository import LeaveRepository

_COLUMNS = """
    r.request_id, r.staff_id, r.leave_type, r.start_date, r.end_date, r.days_requested,
    r.reason, r.status, r.emergency_contact, r.created_at, r.decided_at, r.decided_by, r.admin_note
"""


def _to_request(r: dict) -> LeaveRequest:
    return LeaveRequest(
        request_id=int(r["request_id"]),
        staff_id=int(r["staff_id"]),
        leave_type=LeaveType(r["leave_type"]),
        start_date=r["start_date"],
        end_date=r["end_date"],
        days_requested=int(r.get("days_requested") or 0),
        reason=r.get("reason") or "",
        status=LeaveStatus(r.get("status") or LeaveStatus.PENDING.value),
        emergency_contact=r.get("emergency_contact"),
        created_at=r.get("created_at"),
        decided_at=r.get("decided_at"),
        decided_by=r.get("decided_by"),
        admin_note=r.get("admin_note"),
    )


class MySQLLeaveRepository(LeaveRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        staff_id: int,
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        days_requested: int,
        reason: str,
        emergency_contact: Optional[str],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leave_requests(
                    staff_id, leave_type, start_date, end_date, days_requested, reason, status, emergency_contact
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(staff_id),
                    leave_type.value,
                    start_date,
                    end_date,
                    int(days_requested),
                    reason,
                    LeaveStatus.PENDING.value,
                    emergency_contact,
                ),
            )
            return int(cur.lastrowid)

    def get(self, request_id: int) -> Optional[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM leave_requests r WHERE r.request_id=%s", (int(request_id),))
            row = fetchone(cur)
            return _to_request(row) if row else None

    def list_rows(self, *, start: date, end: date) -> Sequence[LeaveRowView]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS},
                       CONCAT_WS(' ', s.first_name, s.last_name) AS employee_name,
                       s.position
                FROM leave_requests r
                LEFT JOIN staff s ON s.staff_id = r.staff_id
                WHERE r.start_date >= %s AND r.start_date < %s
                ORDER BY r.created_at DESC, r.request_id DESC
                """,
                (start, end),
            )
            return [
                LeaveRowView(request=_to_request(r), employee_name=r.get("employee_name"), position=r.get("position"))
                for r in fetchall(cur)
            ]

    def decide(
        self,
        *,
        request_id: int,
        status: LeaveStatus,
        decided_by: Optional[int],
        decided_at: Optional[datetime],
        admin_note: Optional[str],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_requests
                SET status=%s, decided_by=%s, decided_at=%s, admin_note=%s
                WHERE request_id=%s AND status=%s
                """,
                (status.value, decided_by, decided_at, admin_note, int(request_id), LeaveStatus.PENDING.value),
            )
            return cur.rowcount > 0

    def reopen(self, request_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_requests
                SET status=%s, decided_by=NULL, decided_at=NULL, admin_note=NULL
                WHERE request_id=%s AND status=%s
                """,
                (LeaveStatus.PENDING.value, int(request_id), LeaveStatus.APPROVED.value),
            )
            return cur.rowcount > 0

    def count_pending(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS total FROM leave_requests WHERE status=%s", (LeaveStatus.PENDING.value,))
            row = fetchone(cur)
            return int(row["total"]) if row else 0
