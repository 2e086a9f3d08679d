from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one staff member's attendance for one date."""

    record_id: int
    staff_id: int
    attendance_date: date
    time_in: Optional[datetime]
    time_out: Optional[datetime]
    status: AttendanceStatus
    total_hours: Optional[float] = None
    overtime_hours: Optional[float] = None
    location: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class WorkedHours:
    total_hours: float
    overtime_hours: float
