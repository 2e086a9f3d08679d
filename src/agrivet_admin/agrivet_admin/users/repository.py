from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AccountStatus
from .model import AccountAuditEntry, ActivityEvent, UserAccount, UserSession


class UserRepository(Protocol):
    """Repository interface for back-office accounts.

    Note (DIP): services depend on this interface, not on a concrete database.
    """

    def get_by_id(self, user_id: int) -> Optional[UserAccount]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[UserAccount]:
        raise NotImplementedError

    def list_accounts(self) -> Sequence[UserAccount]:
        raise NotImplementedError

    def create(
        self,
        *,
        email: str,
        first_name: str,
        last_name: str,
        password_hash: str,
        role: str,
        branch: Optional[str],
        status: AccountStatus,
    ) -> int:
        raise NotImplementedError

    def update(self, user_id: int, *, changes: dict) -> None:
        """Apply a column -> value mapping; unknown columns are a programming error."""

        raise NotImplementedError

    def set_status(self, user_id: int, status: AccountStatus) -> bool:
        raise NotImplementedError

    def delete(self, user_id: int) -> bool:
        raise NotImplementedError

    def touch_last_login(self, user_id: int, at: datetime) -> None:
        raise NotImplementedError

    def role_exists(self, role: str) -> bool:
        raise NotImplementedError


class AccountAuditRepository(Protocol):
    def add(self, *, user_id: Optional[int], action: str, performed_by: Optional[int], details: dict) -> int:
        raise NotImplementedError

    def list_recent(self, *, limit: int) -> Sequence[AccountAuditEntry]:
        raise NotImplementedError


class ActivityRepository(Protocol):
    def record(
        self,
        *,
        user_email: str,
        user_name: str,
        role: Optional[str],
        branch: Optional[str],
        module: str,
        action: str,
        details: Optional[str],
        ip_address: Optional[str],
        device: Optional[str],
        created_at: datetime,
    ) -> int:
        raise NotImplementedError

    def list_events(
        self,
        *,
        role: Optional[str] = None,
        module: Optional[str] = None,
        action: Optional[str] = None,
        branch: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 500,
    ) -> Sequence[ActivityEvent]:
        """Events in ``[start, end)``, newest first."""

        raise NotImplementedError


class SessionRepository(Protocol):
    def create(self, session: UserSession) -> None:
        raise NotImplementedError

    def get(self, session_id: str) -> Optional[UserSession]:
        raise NotImplementedError

    def list_open(self) -> Sequence[UserSession]:
        raise NotImplementedError

    def touch(self, session_id: str, at: datetime) -> bool:
        """Refresh ``last_seen_at``; False when the session is unknown or revoked."""

        raise NotImplementedError

    def revoke(self, session_id: str) -> bool:
        raise NotImplementedError

    def revoke_for_user(self, user_email: str, *, keep_session_id: Optional[str] = None) -> int:
        raise NotImplementedError
