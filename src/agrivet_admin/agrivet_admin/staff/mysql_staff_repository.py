from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import WhereBuilder, db_cursor, fetchall, fetchone
from .model import StaffMember
from .repository import StaffRepository

_COLUMNS = """
    staff_id, employee_code, first_name, last_name, email, phone, department, position,
    role, branch, hire_date, salary, is_active, user_id
"""

_WRITABLE = (
    "employee_code",
    "first_name",
    "last_name",
    "email",
    "phone",
    "department",
    "position",
    "role",
    "branch",
    "hire_date",
    "salary",
    "is_active",
    "user_id",
)


def _to_staff(r: dict) -> StaffMember:
    return StaffMember(
        staff_id=int(r["staff_id"]),
        employee_code=r["employee_code"],
        first_name=r["first_name"],
        last_name=r["last_name"],
        email=r["email"],
        phone=r.get("phone"),
        department=r.get("department"),
        position=r.get("position"),
        role=r.get("role") or "staff",
        branch=r.get("branch"),
        hire_date=r.get("hire_date"),
        salary=r.get("salary"),
        is_active=bool(r.get("is_active", True)),
        user_id=r.get("user_id"),
    )


class MySQLStaffRepository(StaffRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _one(self, where: str, value) -> Optional[StaffMember]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM staff WHERE {where}", (value,))
            row = fetchone(cur)
            return _to_staff(row) if row else None

    def get_by_id(self, staff_id: int) -> Optional[StaffMember]:
        return self._one("staff_id=%s", int(staff_id))

    def get_by_email(self, email: str) -> Optional[StaffMember]:
        return self._one("LOWER(email)=LOWER(%s)", email)

    def get_by_code(self, employee_code: str) -> Optional[StaffMember]:
        return self._one("employee_code=%s", employee_code)

    def list_staff(self, *, department: Optional[str] = None, include_inactive: bool = False) -> Sequence[StaffMember]:
        where = WhereBuilder().add_if(department, "department=%s")
        if not include_inactive:
            where.add("is_active=1")
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM staff WHERE {where.sql} ORDER BY first_name, last_name",
                tuple(where.params),
            )
            return [_to_staff(r) for r in fetchall(cur)]

    def create(self, fields: dict) -> int:
        columns = [c for c in _WRITABLE if c in fields]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO staff({', '.join(columns)}) VALUES({', '.join(['%s'] * len(columns))})",
                tuple(fields[c] for c in columns),
            )
            return int(cur.lastrowid)

    def update(self, staff_id: int, *, changes: dict) -> None:
        columns = [c for c in _WRITABLE if c in changes]
        if not columns:
            return
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE staff SET {', '.join(f'{c}=%s' for c in columns)} WHERE staff_id=%s",
                tuple(changes[c] for c in columns) + (int(staff_id),),
            )

    def set_active(self, staff_id: int, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE staff SET is_active=%s WHERE staff_id=%s", (1 if is_active else 0, int(staff_id)))
            return cur.rowcount > 0

    def next_employee_number(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COALESCE(MAX(CAST(SUBSTRING(employee_code, 5) AS UNSIGNED)), 0) AS last_no
                FROM staff
                WHERE employee_code LIKE 'EMP-%'
                """
            )
            row = fetchone(cur)
            return int(row["last_no"] if row else 0) + 1
