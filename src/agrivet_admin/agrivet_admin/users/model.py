from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..common.formatting import full_name
from ..core.enums import AccountStatus


@dataclass(frozen=True)
class UserAccount:
    """Back-office login account. ``role`` is a role slug from the roles table."""

    user_id: int
    email: str
    first_name: str
    last_name: str
    password_hash: str
    role: str
    branch: Optional[str] = None
    status: AccountStatus = AccountStatus.ACTIVE
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return full_name(self.first_name, self.last_name)

    @property
    def is_banned(self) -> bool:
        return self.status == AccountStatus.SUSPENDED

    def to_view(self) -> dict:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "name": self.full_name,
            "role": self.role,
            "branch": self.branch,
            "status": self.status.value,
            "is_banned": self.is_banned,
            "created_at": self.created_at,
            "last_login_at": self.last_login_at,
        }


@dataclass(frozen=True)
class AccountAuditEntry:
    audit_id: int
    user_id: Optional[int]
    action: str
    performed_by: Optional[int]
    details: dict = field(default_factory=dict)
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ActivityEvent:
    event_id: int
    user_email: str
    user_name: str
    role: Optional[str]
    branch: Optional[str]
    module: str
    action: str
    details: Optional[str]
    ip_address: Optional[str]
    device: Optional[str]
    created_at: datetime

    def to_view(self) -> dict:
        return {
            "event_id": self.event_id,
            "user_email": self.user_email,
            "user_name": self.user_name,
            "role": self.role,
            "branch": self.branch,
            "module": self.module,
            "action": self.action,
            "details": self.details,
            "ip_address": self.ip_address,
            "device": self.device,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class UserSession:
    session_id: str
    user_id: int
    user_email: str
    user_name: str
    ip_address: Optional[str]
    device: Optional[str]
    started_at: datetime
    last_seen_at: datetime
    is_revoked: bool = False

    def to_view(self, *, current_session_id: Optional[str] = None) -> dict:
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "user_email": self.user_email,
            "user_name": self.user_name,
            "ip_address": self.ip_address,
            "device": self.device,
            "started_at": self.started_at,
            "last_seen_at": self.last_seen_at,
            "is_current": self.session_id == current_session_id,
        }
