from __future__ import annotations

import dataclasses
from datetime import date, datetime

import pytest

from src.agrivet_admin.agrivet_admin.core.enums import LeaveStatus, LeaveType
from src.agrivet_admin.agrivet_admin.core.exceptions import NotFoundError, ValidationError
from src.agrivet_admin.agrivet_admin.leave.model import LeaveRequest, LeaveRowView
from src.agrivet_admin.agrivet_admin.leave.service import LeaveService, days_between
from src.agrivet_admin.agrivet_admin.staff.model import StaffMember

NOW = datetime(2026, 3, 12, 10, 0)


class FakeLeaveRepo:
    def __init__(self):
        self.rows: dict[int, LeaveRequest] = {}
        self._next_id = 1

    def create(self, *, staff_id, leave_type, start_date, end_date, days_requested, reason, emergency_contact):
        rid = self._next_id
        self._next_id += 1
        self.rows[rid] = LeaveRequest(
            request_id=rid,
            staff_id=staff_id,
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            days_requested=days_requested,
            reason=reason,
            status=LeaveStatus.PENDING,
            emergency_contact=emergency_contact,
            created_at=datetime(2026, 3, 1, 9, rid),
        )
        return rid

    def get(self, request_id):
        return self.rows.get(int(request_id))

    def list_rows(self, *, start, end):
        return [
            LeaveRowView(request=r, employee_name="Ana Reyes", position="Cashier")
            for r in sorted(self.rows.values(), key=lambda r: r.request_id, reverse=True)
            if start <= r.start_date < end
        ]

    def decide(self, *, request_id, status, decided_by, decided_at, admin_note):
        r = self.rows.get(request_id)
        if not r or r.status != LeaveStatus.PENDING:
            return False
        self.rows[request_id] = dataclasses.replace(
            r, status=status, decided_by=decided_by, decided_at=decided_at, admin_note=admin_note
        )
        return True

    def reopen(self, request_id):
        r = self.rows.get(request_id)
        if not r or r.status != LeaveStatus.APPROVED:
            return False
        self.rows[request_id] = dataclasses.replace(r, status=LeaveStatus.PENDING, decided_by=None, decided_at=None, admin_note=None)
        return True

    def count_pending(self):
        return sum(1 for r in self.rows.values() if r.status == LeaveStatus.PENDING)


class FakeStaffRepo:
    def get_by_id(self, staff_id):
        if staff_id == 1:
            return StaffMember(staff_id=1, employee_code="EMP-0001", first_name="Ana", last_name="Reyes", email="ana@agrivet.test")
        return None


class FakeAttendanceService:
    def __init__(self):
        self.marked: list[tuple[int, list[date], str]] = []

    def mark_on_leave(self, staff_id, dates, *, note=None):
        dates = list(dates)
        self.marked.append((staff_id, dates, note))
        return len(dates)


@pytest.fixture()
def env():
    repo = FakeLeaveRepo()
    attendance = FakeAttendanceService()
    svc = LeaveService(repo, FakeStaffRepo(), attendance, clock=lambda: NOW)
    return svc, repo, attendance


def _create(svc, **kw):
    data = dict(
        staff_id=1,
        leave_type="sick",
        start_date=date(2026, 3, 10),
        end_date=date(2026, 3, 12),
        reason="Flu",
    )
    data.update(kw)
    return svc.create_request(**data)


def test_days_between_is_inclusive_and_never_negative():
    assert days_between(date(2026, 3, 10), date(2026, 3, 10)) == 1
    assert days_between(date(2026, 2, 27), date(2026, 3, 2)) == 4
    assert days_between(date(2026, 3, 10), date(2026, 3, 1)) == 0


def test_create_request_computes_days_and_is_pending(env):
    svc, _, _ = env

    req = _create(svc, leave_type="Annual", emergency_contact="  ")

    assert req.leave_type == LeaveType.ANNUAL
    assert req.days_requested == 3
    assert req.status == LeaveStatus.PENDING
    assert req.emergency_contact is None


def test_create_request_reports_every_problem(env):
    svc, _, _ = env

    with pytest.raises(ValidationError) as exc:
        svc.create_request(
            staff_id=99,
            leave_type="vacation",
            start_date=date(2026, 3, 12),
            end_date=date(2026, 3, 10),
            reason=" ",
        )

    assert set(exc.value.errors) == {"staff_id", "end_date", "leave_type", "reason"}


def test_approve_marks_attendance_on_leave(env):
    svc, _, attendance = env
    req = _create(svc)

    approved = svc.approve(req.request_id, admin_id=7, note="Get well")

    assert approved.status == LeaveStatus.APPROVED
    assert approved.decided_at == NOW
    assert approved.decided_by == 7
    assert attendance.marked == [(1, [date(2026, 3, 10), date(2026, 3, 11), date(2026, 3, 12)], "Sick Leave")]

    with pytest.raises(ValidationError):
        svc.approve(req.request_id, admin_id=7)
    with pytest.raises(ValidationError):
        svc.reject(req.request_id, admin_id=7)


def test_approve_returns_request_to_pending_when_marking_days_fails(env):
    svc, repo, attendance = env
    req = _create(svc)

    def broken(staff_id, dates, *, note=None):
        raise RuntimeError("attendance table locked")

    attendance.mark_on_leave = broken

    with pytest.raises(RuntimeError):
        svc.approve(req.request_id, admin_id=7)

    assert repo.get(req.request_id).status == LeaveStatus.PENDING
    assert repo.get(req.request_id).decided_by is None

    del attendance.mark_on_leave
    assert svc.approve(req.request_id, admin_id=7).status == LeaveStatus.APPROVED


def test_reject_clears_decision_date(env):
    svc, _, attendance = env
    req = _create(svc)

    rejected = svc.reject(req.request_id, admin_id=7)

    assert rejected.status == LeaveStatus.REJECTED
    assert rejected.decided_at is None
    assert attendance.marked == []
    with pytest.raises(NotFoundError):
        svc.reject(999, admin_id=7)


def test_approve_all_pending_only_touches_the_month(env):
    svc, repo, _ = env
    _create(svc)
    _create(svc, start_date=date(2026, 3, 20), end_date=date(2026, 3, 20))
    done = _create(svc, start_date=date(2026, 3, 25), end_date=date(2026, 3, 25))
    svc.reject(done.request_id, admin_id=1)
    _create(svc, start_date=date(2026, 4, 1), end_date=date(2026, 4, 2))

    assert svc.approve_all_pending("2026-03", admin_id=1) == 2
    assert svc.pending_count() == 1


def test_list_for_month_tabs_and_stats(env):
    svc, _, _ = env
    first = _create(svc)
    _create(svc, leave_type="annual", start_date=date(2026, 3, 20), end_date=date(2026, 3, 24))
    svc.approve(first.request_id, admin_id=1)

    everything = svc.list_for_month("2026-03")
    pending = svc.list_for_month("2026-03", status_tab="pending")

    assert len(everything["rows"]) == 2
    assert [r["leave_type_label"] for r in pending["rows"]] == ["Annual Leave"]
    assert everything["stats"] == {
        "pending": 1,
        "approved": 1,
        "rejected": 0,
        "total_leave_days": 8,
        "approved_days": 3,
        "on_leave_today": 1,
        "by_type": [
            {"type": "Annual Leave", "total_days": 5, "approved_days": 0},
            {"type": "Sick Leave", "total_days": 3, "approved_days": 3},
        ],
    }

    with pytest.raises(ValidationError):
        svc.list_for_month("2026-03", status_tab="archived")
    with pytest.raises(ValidationError):
        svc.list_for_month("March")


def test_export_rows_flatten_reason(env):
    svc, _, _ = env
    _create(svc, reason="Flu\nand fever")

    rows = svc.export_rows(svc.list_for_month("2026-03")["rows"])

    assert rows == [
        {
            "Employee": "Ana Reyes",
            "Position": "Cashier",
            "Leave Type": "Sick Leave",
            "Start Date": "2026-03-10",
            "End Date": "2026-03-12",
            "Days": 3,
            "Reason": "Flu and fever",
            "Status": "Pending",
            "Applied Date": "2026-03-01",
            "Emergency Contact": "",
        }
    ]
