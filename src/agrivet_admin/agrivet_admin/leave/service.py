from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Optional, Sequence

from ..attendance.service import AttendanceService
from ..common.datetime_utils import date_range, now_local, parse_month
from ..common.validators import require_non_empty
from ..core.enums import LeaveStatus, LeaveType
from ..core.exceptions import NotFoundError, ValidationError
from ..staff.repository import StaffRepository
from .model import LeaveRequest, LeaveRowView
from .repository import LeaveRepository

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "Employee",
    "Position",
    "Leave Type",
    "Start Date",
    "End Date",
    "Days",
    "Reason",
    "Status",
    "Applied Date",
    "Emergency Contact",
]

STATUS_TABS = {"all", "pending", "approved", "rejected"}


def days_between(start: date, end: date) -> int:
    """Whole days from start to end, both inclusive; never negative."""
    return max((end - start).days + 1, 0)


class LeaveService:
    """Use case: leave requests (create, approve/reject, monthly view)."""

    def __init__(
        self,
        leave: LeaveRepository,
        staff: StaffRepository,
        attendance: AttendanceService,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._leave = leave
        self._staff = staff
        self._attendance = attendance
        self._clock = clock

    def _get(self, request_id: int) -> LeaveRequest:
        req = self._leave.get(int(request_id))
        if not req:
            raise NotFoundError("Leave request not found")
        return req

    def create_request(
        self,
        *,
        staff_id: Optional[int],
        leave_type: str,
        start_date: Optional[date],
        end_date: Optional[date],
        reason: str,
        emergency_contact: Optional[str] = None,
    ) -> LeaveRequest:
        errors: dict[str, str] = {}
        if not staff_id:
            errors["staff_id"] = "Employee is required"
        elif not self._staff.get_by_id(int(staff_id)):
            errors["staff_id"] = "Employee not found"
        if not start_date:
            errors["start_date"] = "Start date is required"
        if not end_date:
            errors["end_date"] = "End date is required"
        if start_date and end_date and end_date < start_date:
            errors["end_date"] = "End date must be on or after the start date"
        try:
            kind = LeaveType((leave_type or "").strip().lower())
        except ValueError:
            errors["leave_type"] = "Unknown leave type"
        if not (reason or "").strip():
            errors["reason"] = "Reason is required"
        if errors:
            raise ValidationError("Please fix the highlighted fields", errors)

        request_id = self._leave.create(
            staff_id=int(staff_id),
            leave_type=kind,
            start_date=start_date,
            end_date=end_date,
            days_requested=days_between(start_date, end_date),
            reason=require_non_empty(reason, "Reason"),
            emergency_contact=(emergency_contact or "").strip() or None,
        )
        return self._get(request_id)

    def approve(self, request_id: int, *, admin_id: Optional[int], note: str = "") -> LeaveRequest:
        req = self._get(request_id)
        if req.status != LeaveStatus.PENDING:
            raise ValidationError("This request has already been processed")

        ok = self._leave.decide(
            request_id=req.request_id,
            status=LeaveStatus.APPROVED,
            decided_by=admin_id,
            decided_at=self._clock(),
            admin_note=(note or "").strip() or None,
        )
        if not ok:
            raise ValidationError("Failed to approve request")

        try:
            self._attendance.mark_on_leave(
                req.staff_id, date_range(req.start_date, req.end_date), note=req.leave_type.label
            )
        except Exception:
            logger.exception("Marking leave days failed; request %s returned to pending", req.request_id)
            self._leave.reopen(req.request_id)
            raise
        logger.info("Leave request %s approved by %s", req.request_id, admin_id)
        return self._get(req.request_id)

    def reject(self, request_id: int, *, admin_id: Optional[int], note: str = "") -> LeaveRequest:
        req = self._get(request_id)
        if req.status != LeaveStatus.PENDING:
            raise ValidationError("This request has already been processed")

        ok = self._leave.decide(
            request_id=req.request_id,
            status=LeaveStatus.REJECTED,
            decided_by=admin_id,
            decided_at=None,
            admin_note=(note or "").strip() or None,
        )
        if not ok:
            raise ValidationError("Failed to reject request")
        return self._get(req.request_id)

    def approve_all_pending(self, month: str, *, admin_id: Optional[int]) -> int:
        approved = 0
        for row in self._month_rows(month):
            if row.request.status == LeaveStatus.PENDING:
                self.approve(row.request.request_id, admin_id=admin_id)
                approved += 1
        return approved

    def _month_rows(self, month: str) -> Sequence[LeaveRowView]:
        start, end = parse_month(month)
        return self._leave.list_rows(start=start, end=end)

    def list_for_month(self, month: str, *, status_tab: str = "all") -> dict:
        tab = (status_tab or "all").lower()
        if tab not in STATUS_TABS:
            raise ValidationError(f"Unknown tab: {status_tab}")

        rows = list(self._month_rows(month))
        visible = rows if tab == "all" else [r for r in rows if r.request.status.value == tab]
        return {"rows": [r.to_view() for r in visible], "stats": self.stats(rows)}

    def stats(self, rows: Sequence[LeaveRowView], *, today: Optional[date] = None) -> dict:
        today = today or self._clock().date()
        requests = [r.request for r in rows]

        by_type: dict[str, dict] = {}
        for req in requests:
            t = by_type.setdefault(req.leave_type.label, {"type": req.leave_type.label, "total_days": 0, "approved_days": 0})
            t["total_days"] += req.days_requested
            if req.status == LeaveStatus.APPROVED:
                t["approved_days"] += req.days_requested

        approved = [r for r in requests if r.status == LeaveStatus.APPROVED]
        return {
            "pending": sum(1 for r in requests if r.status == LeaveStatus.PENDING),
            "approved": len(approved),
            "rejected": sum(1 for r in requests if r.status == LeaveStatus.REJECTED),
            "total_leave_days": sum(r.days_requested for r in requests),
            "approved_days": sum(r.days_requested for r in approved),
            "on_leave_today": sum(1 for r in approved if r.start_date <= today <= r.end_date),
            "by_type": list(by_type.values()),
        }

    def pending_count(self) -> int:
        return self._leave.count_pending()

    @staticmethod
    def export_rows(views: Sequence[dict]) -> list[dict]:
        return [
            {
                "Employee": v["employee_name"],
                "Position": v["position"],
                "Leave Type": v["leave_type_label"],
                "Start Date": v["start_date"].isoformat(),
                "End Date": v["end_date"].isoformat(),
                "Days": v["days"],
                "Reason": (v["reason"] or "").replace("\n", " "),
                "Status": v["status_label"],
                "Applied Date": v["applied_date"].isoformat() if v["applied_date"] else "",
                "Emergency Contact": v["emergency_contact"],
            }
            for v in views
        ]
