from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Callable, Iterable, Optional

from ..common.datetime_utils import now_local, parse_hhmm
from ..common.formatting import share
from ..core.constants import DEFAULT_LATE_GRACE_MINUTES, DEFAULT_WORKDAY_START
from ..core.enums import AttendanceStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..staff.model import StaffMember
from ..staff.repository import StaffRepository
from .calculator.base import HoursCalculator
from .calculator.standard_calculator import StandardHoursCalculator
from .factory import AttendanceStrategyFactory
from .model import AttendanceRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

BOARD_EXPORT_COLUMNS = ["Staff Name", "Department", "Position", "Time In", "Time Out", "Total Hours", "Status", "Notes"]
TIMESHEET_EXPORT_COLUMNS = [
    "Date",
    "Employee Code",
    "Staff Name",
    "Department",
    "Time In",
    "Time Out",
    "Total Hours",
    "Overtime Hours",
    "Status",
    "Notes",
]


def _clock(value: Optional[datetime]) -> str:
    return value.strftime("%H:%M") if value else "-"


def _row(member: StaffMember, record: Optional[AttendanceRecord], day: date) -> dict:
    return {
        "staff_id": member.staff_id,
        "employee_code": member.employee_code,
        "staff_name": member.full_name,
        "department": member.department,
        "position": member.position,
        "attendance_date": day,
        "record_id": record.record_id if record else None,
        "time_in": record.time_in if record else None,
        "time_out": record.time_out if record else None,
        "total_hours": record.total_hours if record else None,
        "overtime_hours": record.overtime_hours if record else None,
        "status": (record.status if record else AttendanceStatus.ABSENT).value,
        "location": record.location if record else None,
        "notes": record.notes if record else None,
    }


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        staff: StaffRepository,
        *,
        strategy_factory: Optional[AttendanceStrategyFactory] = None,
        calculator: Optional[HoursCalculator] = None,
        workday_start: str = DEFAULT_WORKDAY_START,
        grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._staff = staff
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._calculator = calculator or StandardHoursCalculator()
        self._workday_start: time = parse_hhmm(workday_start)
        self._grace_minutes = int(grace_minutes)
        self._clock = clock

    def _active_member(self, staff_id: int) -> StaffMember:
        member = self._staff.get_by_id(int(staff_id))
        if not member:
            raise NotFoundError("Staff member not found")
        if not member.is_active:
            raise ValidationError("Staff member is inactive")
        return member

    def clock_in(self, staff_id: int, *, now: Optional[datetime] = None, location: Optional[str] = None) -> AttendanceRecord:
        now = now or self._clock()
        today = now.date()
        member = self._active_member(staff_id)

        existing = self._attendance.get_for_staff_and_date(member.staff_id, today)
        if existing:
            raise ValidationError(f"{member.full_name} already has an attendance record for {today.isoformat()}")

        workday_start = datetime.combine(today, self._workday_start)
        strategy = self._factory.for_clock_in(now=now, workday_start=workday_start, grace_minutes=self._grace_minutes)
        decision = strategy.decide_clock_in(now=now, workday_start=workday_start)

        self._attendance.create_clock_in(
            staff_id=member.staff_id,
            attendance_date=today,
            time_in=now,
            status=decision.status,
            location=(location or "").strip() or None,
            notes=decision.note,
        )
        logger.info("Clock-in %s at %s (%s)", member.employee_code, now.strftime("%H:%M"), decision.status.value)
        return self._attendance.get_for_staff_and_date(member.staff_id, today)

    def clock_out(self, staff_id: int, *, now: Optional[datetime] = None) -> AttendanceRecord:
        now = now or self._clock()
        today = now.date()
        member = self._active_member(staff_id)

        record = self._attendance.get_for_staff_and_date(member.staff_id, today)
        if not record or record.time_in is None:
            raise ValidationError(f"{member.full_name} has not clocked in today")
        if record.time_out is not None:
            raise ValidationError(f"{member.full_name} has already clocked out today")

        worked = self._calculator.worked(record.time_in, now)
        self._attendance.update_clock_out(
            record_id=record.record_id,
            time_out=now,
            total_hours=worked.total_hours,
            overtime_hours=worked.overtime_hours,
        )
        return self._attendance.get_for_staff_and_date(member.staff_id, today)

    def _members(
        self, *, department: Optional[str], staff_id: Optional[int], include_inactive: bool = False
    ) -> list[StaffMember]:
        members = list(self._staff.list_staff(department=department, include_inactive=include_inactive))
        if staff_id is not None:
            members = [m for m in members if m.staff_id == int(staff_id)]
        return members

    def daily_board(self, day: date, *, department: Optional[str] = None, staff_id: Optional[int] = None) -> dict:
        """Every active staff member with their record for ``day`` (absent when missing)."""

        members = self._members(department=department, staff_id=staff_id)
        records = {r.staff_id: r for r in self._attendance.list_range(start=day, end=day)}
        rows = [_row(m, records.get(m.staff_id), day) for m in members]
        return {"rows": rows, "summary": self.summarize(rows)}

    @staticmethod
    def summarize(rows: list[dict]) -> dict:
        def count(status: AttendanceStatus) -> int:
            return sum(1 for r in rows if r["status"] == status.value)

        late = count(AttendanceStatus.LATE)
        present = count(AttendanceStatus.PRESENT) + late
        with_hours = [r["total_hours"] for r in rows if r["total_hours"]]

        return {
            "total_staff": len(rows),
            "present": present,
            "late": late,
            "absent": count(AttendanceStatus.ABSENT),
            "on_leave": count(AttendanceStatus.ON_LEAVE),
            "average_hours": round(sum(with_hours) / len(with_hours), 2) if with_hours else 0.0,
            "overtime_hours": round(sum(r["overtime_hours"] or 0 for r in rows), 2),
            "attendance_rate": share(present, len(rows)),
        }

    def timesheet(
        self,
        start: date,
        end: date,
        *,
        department: Optional[str] = None,
        staff_id: Optional[int] = None,
    ) -> dict:
        if end < start:
            raise ValidationError("End date must be on or after the start date")

        members = {
            m.staff_id: m for m in self._members(department=department, staff_id=staff_id, include_inactive=True)
        }
        rows = [
            _row(members[r.staff_id], r, r.attendance_date)
            for r in self._attendance.list_range(start=start, end=end, staff_id=staff_id)
            if r.staff_id in members
        ]

        totals: dict[int, dict] = {}
        for r in rows:
            t = totals.get(r["staff_id"])
            if not t:
                t = {
                    "staff_id": r["staff_id"],
                    "staff_name": r["staff_name"],
                    "department": r["department"],
                    "days_worked": 0,
                    "total_hours": 0.0,
                    "overtime_hours": 0.0,
                    "late_count": 0,
                    "leave_days": 0,
                }
                totals[r["staff_id"]] = t
            if r["status"] in (AttendanceStatus.PRESENT.value, AttendanceStatus.LATE.value):
                t["days_worked"] += 1
            if r["status"] == AttendanceStatus.LATE.value:
                t["late_count"] += 1
            if r["status"] == AttendanceStatus.ON_LEAVE.value:
                t["leave_days"] += 1
            t["total_hours"] = round(t["total_hours"] + (r["total_hours"] or 0), 2)
            t["overtime_hours"] = round(t["overtime_hours"] + (r["overtime_hours"] or 0), 2)

        return {
            "start": start,
            "end": end,
            "rows": rows,
            "totals": sorted(totals.values(), key=lambda t: t["staff_name"].lower()),
        }

    def mark_on_leave(self, staff_id: int, dates: Iterable[date], *, note: Optional[str] = None) -> int:
        marked = 0
        for d in dates:
            self._attendance.set_status_for_date(
                staff_id=int(staff_id), attendance_date=d, status=AttendanceStatus.ON_LEAVE, notes=note
            )
            marked += 1
        return marked

    @staticmethod
    def board_export_rows(rows: list[dict]) -> list[dict]:
        return [
            {
                "Staff Name": r["staff_name"],
                "Department": r["department"] or "",
                "Position": r["position"] or "",
                "Time In": _clock(r["time_in"]),
                "Time Out": _clock(r["time_out"]),
                "Total Hours": r["total_hours"] if r["total_hours"] is not None else "-",
                "Status": r["status"],
                "Notes": r["notes"] or "",
            }
            for r in rows
        ]

    @staticmethod
    def timesheet_export_rows(rows: list[dict]) -> list[dict]:
        return [
            {
                "Date": r["attendance_date"].strftime("%Y-%m-%d"),
                "Employee Code": r["employee_code"],
                "Staff Name": r["staff_name"],
                "Department": r["department"] or "",
                "Time In": _clock(r["time_in"]),
                "Time Out": _clock(r["time_out"]),
                "Total Hours": r["total_hours"] if r["total_hours"] is not None else 0,
                "Overtime Hours": r["overtime_hours"] if r["overtime_hours"] is not None else 0,
                "Status": r["status"],
                "Notes": r["notes"] or "",
            }
            for r in rows
        ]
