from __future__ import annotations

from enum import Enum


class AccountStatus(str, Enum):
    """Login account state. Suspended accounts are banned."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    LATE = "late"
    ABSENT = "absent"
    ON_LEAVE = "on_leave"


class LeaveStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LeaveType(str, Enum):
    ANNUAL = "annual"
    SICK = "sick"
    PERSONAL = "personal"
    EMERGENCY = "emergency"
    MATERNITY = "maternity"
    PATERNITY = "paternity"

    @property
    def label(self) -> str:
        return f"{self.value.capitalize()} Leave"


class CampaignTemplateType(str, Enum):
    HERO_BANNER = "hero_banner"
    PROMO_CARD = "promo_card"
    POPUP = "popup"


class CampaignStatus(str, Enum):
    """Derived from the campaign flags and dates, never stored."""

    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"
    UNPUBLISHED = "unpublished"
    ARCHIVED = "archived"


class CampaignEventType(str, Enum):
    VIEW = "view"
    CLICK = "click"
    CONVERSION = "conversion"
    IMPRESSION = "impression"


class SalesPeriod(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class PermissionModule(str, Enum):
    DASHBOARD = "dashboard"
    INVENTORY = "inventory"
    SALES = "sales"
    REPORTS = "reports"
    STAFF = "staff"
    MARKETING = "marketing"
    SETTINGS = "settings"


class PermissionAction(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    EXPORT = "export"


class RoleScope(str, Enum):
    GLOBAL = "global"
    BRANCH = "branch"
