from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import WhereBuilder, db_cursor, fetchall, fetchone
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = """
    record_id, staff_id, attendance_date, time_in, time_out, status,
    total_hours, overtime_hours, location, notes
"""


def _hours(value) -> Optional[float]:
    return float(value) if value is not None else None


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=int(r["record_id"]),
        staff_id=int(r["staff_id"]),
        attendance_date=r["attendance_date"],
        time_in=r.get("time_in"),
        time_out=r.get("time_out"),
        status=AttendanceStatus(r["status"]),
        total_hours=_hours(r.get("total_hours")),
        overtime_hours=_hours(r.get("overtime_hours")),
        location=r.get("location"),
        notes=r.get("notes"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_staff_and_date(self, staff_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE staff_id=%s AND attendance_date=%s",
                (int(staff_id), attendance_date),
            )
            row = fetchone(cur)
            return _to_record(row) if row else None

    def create_clock_in(
        self,
        *,
        staff_id: int,
        attendance_date: date,
        time_in: datetime,
        status: AttendanceStatus,
        location: Optional[str],
        notes: Optional[str],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(staff_id, attendance_date, time_in, status, location, notes)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (int(staff_id), attendance_date, time_in, status.value, location, notes),
            )
            return int(cur.lastrowid)

    def update_clock_out(self, *, record_id: int, time_out: datetime, total_hours: float, overtime_hours: float) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET time_out=%s, total_hours=%s, overtime_hours=%s
                WHERE record_id=%s AND time_out IS NULL
                """,
                (time_out, total_hours, overtime_hours, int(record_id)),
            )
            return cur.rowcount > 0

    def list_range(self, *, start: date, end: date, staff_id: Optional[int] = None) -> Sequence[AttendanceRecord]:
        where = WhereBuilder().add("attendance_date BETWEEN %s AND %s", start, end).add_if(staff_id, "staff_id=%s")
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE {where.sql}
                ORDER BY attendance_date ASC, time_in ASC
                """,
                tuple(where.params),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def set_status_for_date(self, *, staff_id: int, attendance_date: date, status: AttendanceStatus, notes: Optional[str]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(staff_id, attendance_date, status, notes)
                VALUES(%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE status=VALUES(status), notes=VALUES(notes)
                """,
                (int(staff_id), attendance_date, status.value, notes),
            )
