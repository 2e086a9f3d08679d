from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import LeaveStatus, LeaveType


@dataclass(frozen=True)
class LeaveRequest:
    request_id: int
    staff_id: int
    leave_type: LeaveType
    start_date: date
    end_date: date
    days_requested: int
    reason: str
    status: LeaveStatus
    emergency_contact: Optional[str] = None
    created_at: Optional[datetime] = None
    decided_at: Optional[datetime] = None
    decided_by: Optional[int] = None
    admin_note: Optional[str] = None


@dataclass(frozen=True)
class LeaveRowView:
    """Read-model: a request joined with the employee it belongs to."""

    request: LeaveRequest
    employee_name: Optional[str]
    position: Optional[str]

    def to_view(self) -> dict:
        r = self.request
        return {
            "request_id": r.request_id,
            "staff_id": r.staff_id,
            "employee_name": self.employee_name or "N/A",
            "position": self.position or "N/A",
            "leave_type": r.leave_type.value,
            "leave_type_label": r.leave_type.label,
            "start_date": r.start_date,
            "end_date": r.end_date,
            "days": r.days_requested,
            "reason": r.reason,
            "status": r.status.value,
            "status_label": r.status.value.capitalize(),
            "applied_date": r.created_at.date() if r.created_at else None,
            "emergency_contact": r.emergency_contact or "",
            "decided_at": r.decided_at,
            "admin_note": r.admin_note,
        }
