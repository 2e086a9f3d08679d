from __future__ import annotations

from datetime import datetime
from typing import Callable

from ..attendance.service import AttendanceService
from ..common.datetime_utils import now_local
from ..core.enums import PermissionAction, PermissionModule
from ..leave.service import LeaveService
from ..marketing.service import CampaignService
from ..permissions.service import RolePermissionService
from ..sales.dashboard_service import DailySalesSummaryService


class DashboardOverviewService:
    """Landing-page cards; a section is left out when the role cannot read its module."""

    def __init__(
        self,
        permissions: RolePermissionService,
        daily_sales: DailySalesSummaryService,
        attendance: AttendanceService,
        leave: LeaveService,
        campaigns: CampaignService,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._permissions = permissions
        self._daily_sales = daily_sales
        self._attendance = attendance
        self._leave = leave
        self._campaigns = campaigns
        self._clock = clock

    def _can_read(self, role: str, module: PermissionModule) -> bool:
        return self._permissions.has_permission(role, module, PermissionAction.READ)

    def overview(self, role: str) -> dict:
        today = self._clock().date()
        out: dict = {"date": today}

        if self._can_read(role, PermissionModule.SALES):
            out["sales"] = self._daily_sales.summary(today)["totals"]

        if self._can_read(role, PermissionModule.STAFF):
            out["attendance"] = self._attendance.daily_board(today)["summary"]
            out["leave"] = {"pending": self._leave.pending_count()}

        if self._can_read(role, PermissionModule.MARKETING):
            out["marketing"] = self._campaigns.dashboard_metrics()

        return out
