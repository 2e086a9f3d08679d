from __future__ import annotations

import dataclasses
from datetime import date, datetime

import pytest

from src.agrivet_admin.agrivet_admin.attendance.model import AttendanceRecord
from src.agrivet_admin.agrivet_admin.attendance.service import AttendanceService
from src.agrivet_admin.agrivet_admin.core.enums import AttendanceStatus
from src.agrivet_admin.agrivet_admin.core.exceptions import NotFoundError, ValidationError
from src.agrivet_admin.agrivet_admin.staff.model import StaffMember

DAY = date(2026, 3, 2)


class FakeAttendanceRepo:
    def __init__(self):
        self.records: dict[tuple[int, date], AttendanceRecord] = {}
        self._next_id = 1

    def get_for_staff_and_date(self, staff_id, attendance_date):
        return self.records.get((int(staff_id), attendance_date))

    def create_clock_in(self, *, staff_id, attendance_date, time_in, status, location, notes):
        rid = self._next_id
        self._next_id += 1
        self.records[(staff_id, attendance_date)] = AttendanceRecord(
            record_id=rid,
            staff_id=staff_id,
            attendance_date=attendance_date,
            time_in=time_in,
            time_out=None,
            status=status,
            location=location,
            notes=notes,
        )
        return rid

    def update_clock_out(self, *, record_id, time_out, total_hours, overtime_hours):
        for key, rec in self.records.items():
            if rec.record_id == record_id:
                self.records[key] = dataclasses.replace(
                    rec, time_out=time_out, total_hours=total_hours, overtime_hours=overtime_hours
                )
                return True
        return False

    def list_range(self, *, start, end, staff_id=None):
        return sorted(
            (
                r
                for r in self.records.values()
                if start <= r.attendance_date <= end and (staff_id is None or r.staff_id == staff_id)
            ),
            key=lambda r: r.attendance_date,
        )

    def set_status_for_date(self, *, staff_id, attendance_date, status, notes):
        existing = self.records.get((staff_id, attendance_date))
        if existing:
            self.records[(staff_id, attendance_date)] = dataclasses.replace(existing, status=status, notes=notes)
            return
        rid = self._next_id
        self._next_id += 1
        self.records[(staff_id, attendance_date)] = AttendanceRecord(
            record_id=rid, staff_id=staff_id, attendance_date=attendance_date, time_in=None, time_out=None, status=status, notes=notes
        )


class FakeStaffRepo:
    def __init__(self, members):
        self.rows = {m.staff_id: m for m in members}

    def get_by_id(self, staff_id):
        return self.rows.get(int(staff_id))

    def list_staff(self, *, department=None, include_inactive=False):
        return [
            m
            for m in self.rows.values()
            if (department is None or m.department == department) and (include_inactive or m.is_active)
        ]


def _member(sid, first, department, **kw):
    return StaffMember(
        staff_id=sid,
        employee_code=f"EMP-{sid:04d}",
        first_name=first,
        last_name="Dela Cruz",
        email=f"{first.lower()}@agrivet.test",
        department=department,
        position="Clerk",
        **kw,
    )


@pytest.fixture()
def env():
    attendance = FakeAttendanceRepo()
    staff = FakeStaffRepo(
        [
            _member(1, "Ana", "Sales"),
            _member(2, "Ben", "Sales"),
            _member(3, "Cy", "Warehouse"),
            _member(4, "Dee", "Warehouse"),
            _member(5, "Eli", "Sales", is_active=False),
        ]
    )
    svc = AttendanceService(attendance, staff, workday_start="08:00", grace_minutes=15)
    return svc, attendance


def test_clock_in_decides_present_or_late(env):
    svc, _ = env

    on_time = svc.clock_in(1, now=datetime(2026, 3, 2, 8, 10), location=" Main branch ")
    late = svc.clock_in(2, now=datetime(2026, 3, 2, 8, 16))

    assert on_time.status == AttendanceStatus.PRESENT
    assert on_time.location == "Main branch"
    assert late.status == AttendanceStatus.LATE
    assert late.notes == "Late by 16 min"


def test_clock_in_twice_or_inactive_or_unknown_is_rejected(env):
    svc, _ = env
    svc.clock_in(1, now=datetime(2026, 3, 2, 8, 0))

    with pytest.raises(ValidationError):
        svc.clock_in(1, now=datetime(2026, 3, 2, 9, 0))
    with pytest.raises(ValidationError):
        svc.clock_in(5, now=datetime(2026, 3, 2, 8, 0))
    with pytest.raises(NotFoundError):
        svc.clock_in(42, now=datetime(2026, 3, 2, 8, 0))


def test_clock_out_computes_hours_and_overtime(env):
    svc, _ = env
    svc.clock_in(1, now=datetime(2026, 3, 2, 8, 0))

    record = svc.clock_out(1, now=datetime(2026, 3, 2, 18, 15))

    assert record.total_hours == 10.25
    assert record.overtime_hours == 2.25

    with pytest.raises(ValidationError):
        svc.clock_out(1, now=datetime(2026, 3, 2, 19, 0))
    with pytest.raises(ValidationError):
        svc.clock_out(2, now=datetime(2026, 3, 2, 17, 0))


def test_daily_board_marks_missing_records_absent(env):
    svc, _ = env
    svc.clock_in(1, now=datetime(2026, 3, 2, 8, 0))
    svc.clock_out(1, now=datetime(2026, 3, 2, 17, 0))
    svc.clock_in(2, now=datetime(2026, 3, 2, 9, 0))
    svc.clock_out(2, now=datetime(2026, 3, 2, 20, 0))
    svc.mark_on_leave(3, [DAY], note="Sick Leave")

    board = svc.daily_board(DAY)

    statuses = {r["staff_name"]: r["status"] for r in board["rows"]}
    assert statuses == {"Ana Dela Cruz": "present", "Ben Dela Cruz": "late", "Cy Dela Cruz": "on_leave", "Dee Dela Cruz": "absent"}
    assert board["summary"] == {
        "total_staff": 4,
        "present": 2,
        "late": 1,
        "absent": 1,
        "on_leave": 1,
        "average_hours": 10.0,
        "overtime_hours": 4.0,
        "attendance_rate": 50.0,
    }


def test_daily_board_filters(env):
    svc, _ = env

    assert [r["staff_id"] for r in svc.daily_board(DAY, department="Warehouse")["rows"]] == [3, 4]
    assert [r["staff_id"] for r in svc.daily_board(DAY, staff_id=2)["rows"]] == [2]
    assert svc.daily_board(DAY, department="Nowhere")["summary"]["attendance_rate"] == 0.0


def test_timesheet_totals_per_staff(env):
    svc, _ = env
    for day, hour_in, hour_out in ((2, 8, 17), (3, 9, 18), (4, 8, 16)):
        svc.clock_in(1, now=datetime(2026, 3, day, hour_in, 0))
        svc.clock_out(1, now=datetime(2026, 3, day, hour_out, 0))
    svc.mark_on_leave(1, [date(2026, 3, 5)])
    svc.clock_in(3, now=datetime(2026, 3, 10, 8, 0))

    sheet = svc.timesheet(date(2026, 3, 1), date(2026, 3, 5))

    assert [r["attendance_date"] for r in sheet["rows"]] == [date(2026, 3, d) for d in (2, 3, 4, 5)]
    assert sheet["totals"] == [
        {
            "staff_id": 1,
            "staff_name": "Ana Dela Cruz",
            "department": "Sales",
            "days_worked": 3,
            "total_hours": 26.0,
            "overtime_hours": 2.0,
            "late_count": 1,
            "leave_days": 1,
        }
    ]

    with pytest.raises(ValidationError):
        svc.timesheet(date(2026, 3, 5), date(2026, 3, 1))


def test_export_rows_use_placeholders_for_missing_times(env):
    svc, _ = env
    rows = svc.board_export_rows(svc.daily_board(DAY, staff_id=4)["rows"])

    assert rows == [
        {
            "Staff Name": "Dee Dela Cruz",
            "Department": "Warehouse",
            "Position": "Clerk",
            "Time In": "-",
            "Time Out": "-",
            "Total Hours": "-",
            "Status": "absent",
            "Notes": "",
        }
    ]
