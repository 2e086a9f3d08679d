from __future__ import annotations

from datetime import date, datetime

from src.agrivet_admin.agrivet_admin.core.constants import SUPER_ADMIN_ROLE
from src.agrivet_admin.agrivet_admin.dashboard.service import DashboardOverviewService
from src.agrivet_admin.agrivet_admin.permissions.model import PermissionMatrix, Role
from src.agrivet_admin.agrivet_admin.permissions.service import RolePermissionService

TODAY = date(2026, 3, 12)


class Roles:
    def __init__(self):
        self.roles = {
            "cashier": Role("cashier", "Cashier", matrix=PermissionMatrix.of(("dashboard", "read"), ("sales", "read"))),
            "hr": Role("hr", "HR", matrix=PermissionMatrix.of(("dashboard", "read"), ("staff", "read"))),
        }

    def get(self, role_id):
        return self.roles.get(role_id)


class DailySales:
    def __init__(self):
        self.days = []

    def summary(self, day=None):
        self.days.append(day)
        return {"date": day, "totals": {"total_sales": "1200.00", "orders": 4}, "hourly": []}


class Attendance:
    def daily_board(self, day, **_):
        return {"rows": [], "summary": {"present": 3, "absent": 1}}


class Leave:
    def pending_count(self):
        return 2


class Campaigns:
    def dashboard_metrics(self):
        return {"total_campaigns": 5}


def make_service(daily=None):
    return DashboardOverviewService(
        RolePermissionService(Roles()),
        daily or DailySales(),
        Attendance(),
        Leave(),
        Campaigns(),
        clock=lambda: datetime(2026, 3, 12, 14, 0),
    )


def test_cashier_sees_only_sales():
    daily = DailySales()
    out = make_service(daily).overview("cashier")

    assert out == {"date": TODAY, "sales": {"total_sales": "1200.00", "orders": 4}}
    assert daily.days == [TODAY]


def test_staff_readers_get_attendance_and_pending_leave():
    out = make_service().overview("hr")

    assert out["attendance"] == {"present": 3, "absent": 1}
    assert out["leave"] == {"pending": 2}
    assert "sales" not in out and "marketing" not in out


def test_super_admin_gets_every_section():
    out = make_service().overview(SUPER_ADMIN_ROLE)

    assert set(out) == {"date", "sales", "attendance", "leave", "marketing"}


def test_unknown_role_gets_only_the_date():
    assert make_service().overview("ghost") == {"date": TODAY}
