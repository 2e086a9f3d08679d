from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_for_staff_and_date(self, staff_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

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
        raise NotImplementedError

    def update_clock_out(self, *, record_id: int, time_out: datetime, total_hours: float, overtime_hours: float) -> bool:
        raise NotImplementedError

    def list_range(self, *, start: date, end: date, staff_id: Optional[int] = None) -> Sequence[AttendanceRecord]:
        """Records with ``start <= attendance_date <= end``, oldest first."""

        raise NotImplementedError

    def set_status_for_date(self, *, staff_id: int, attendance_date: date, status: AttendanceStatus, notes: Optional[str]) -> None:
        """Insert or overwrite the day's status (leave marking)."""

        raise NotImplementedError
