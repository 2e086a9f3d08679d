from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.calculator.standard_calculator import StandardHoursCalculator
from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .core import constants
from .dashboard.service import DashboardOverviewService
from .database.connection import DBConfig, DatabaseConnection
from .leave.mysql_leave_repository import MySQLLeaveRepository
from .leave.service import LeaveService
from .marketing.mysql_marketing_repository import (
    MySQLCampaignEventRepository,
    MySQLCampaignRepository,
    MySQLMarketingAuditRepository,
    MySQLTemplateRepository,
)
from .marketing.service import CampaignService
from .marketing.storage import ImageStorage
from .permissions.mysql_role_repository import MySQLRoleRepository
from .permissions.service import RolePermissionService
from .sales.dashboard_service import DailySalesSummaryService, SalesDashboardService
from .sales.mysql_sales_repository import MySQLSalesRepository
from .sales.report_service import ProductSalesReportService, SalesRecordsService, SalesValueService
from .staff.mysql_staff_repository import MySQLStaffRepository
from .staff.service import StaffService
from .users.activity_service import ActivityService
from .users.mysql_activity_repository import MySQLActivityRepository, MySQLSessionRepository
from .users.mysql_user_repository import MySQLAccountAuditRepository, MySQLUserRepository
from .users.service import AuthService, UserAccountService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    permission_service: RolePermissionService
    auth_service: AuthService
    user_account_service: UserAccountService
    activity_service: ActivityService

    staff_service: StaffService
    attendance_service: AttendanceService
    leave_service: LeaveService

    sales_dashboard_service: SalesDashboardService
    daily_sales_service: DailySalesSummaryService
    product_sales_service: ProductSalesReportService
    sales_value_service: SalesValueService
    sales_records_service: SalesRecordsService

    campaign_service: CampaignService
    image_storage: ImageStorage

    dashboard_service: DashboardOverviewService


def build_container(*, db_config: dict, settings=None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    def setting(name: str, default):
        return getattr(settings, name, default) if settings is not None else default

    roles_repo = MySQLRoleRepository(conn)
    users_repo = MySQLUserRepository(conn)
    account_audit_repo = MySQLAccountAuditRepository(conn)
    activity_repo = MySQLActivityRepository(conn)
    sessions_repo = MySQLSessionRepository(conn)
    staff_repo = MySQLStaffRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    leave_repo = MySQLLeaveRepository(conn)
    sales_repo = MySQLSalesRepository(conn)

    permission_service = RolePermissionService(roles_repo)
    auth_service = AuthService(users_repo, activity_repo, sessions_repo)
    user_account_service = UserAccountService(users_repo, account_audit_repo, sessions_repo)
    activity_service = ActivityService(activity_repo, sessions_repo, users_repo)

    staff_service = StaffService(staff_repo)
    attendance_service = AttendanceService(
        attendance_repo,
        staff_repo,
        strategy_factory=AttendanceStrategyFactory(),
        calculator=StandardHoursCalculator(
            setting("STANDARD_WORKDAY_HOURS", constants.DEFAULT_STANDARD_WORKDAY_HOURS)
        ),
        workday_start=setting("WORKDAY_START", constants.DEFAULT_WORKDAY_START),
        grace_minutes=setting("LATE_GRACE_MINUTES", constants.DEFAULT_LATE_GRACE_MINUTES),
    )
    leave_service = LeaveService(leave_repo, staff_repo, attendance_service)

    daily_sales_service = DailySalesSummaryService(sales_repo)

    campaign_service = CampaignService(
        MySQLCampaignRepository(conn),
        MySQLTemplateRepository(conn),
        MySQLCampaignEventRepository(conn),
        MySQLMarketingAuditRepository(conn),
    )
    image_storage = ImageStorage(
        setting("UPLOAD_DIR", "uploads"),
        url_prefix=setting("UPLOAD_URL_PREFIX", "/uploads"),
        max_bytes=setting("MAX_UPLOAD_BYTES", constants.MAX_UPLOAD_BYTES),
        max_width=setting("MAX_IMAGE_WIDTH", constants.MAX_IMAGE_WIDTH),
    )

    return Container(
        conn=conn,
        permission_service=permission_service,
        auth_service=auth_service,
        user_account_service=user_account_service,
        activity_service=activity_service,
        staff_service=staff_service,
        attendance_service=attendance_service,
        leave_service=leave_service,
        sales_dashboard_service=SalesDashboardService(sales_repo),
        daily_sales_service=daily_sales_service,
        product_sales_service=ProductSalesReportService(sales_repo),
        sales_value_service=SalesValueService(sales_repo),
        sales_records_service=SalesRecordsService(sales_repo),
        campaign_service=campaign_service,
        image_storage=image_storage,
        dashboard_service=DashboardOverviewService(
            permission_service, daily_sales_service, attendance_service, leave_service, campaign_service
        ),
    )
