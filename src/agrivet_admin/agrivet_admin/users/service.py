from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.datetime_utils import now_local
from ..common.devices import describe_device
from ..common.validators import require_email, require_max_length, require_min_length, require_non_empty
from ..core.constants import DEFAULT_LIST_LIMIT, MIN_PASSWORD_LENGTH
from ..core.enums import AccountStatus
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from .model import UserAccount, UserSession
from .repository import AccountAuditRepository, ActivityRepository, SessionRepository, UserRepository

logger = logging.getLogger(__name__)

_INVALID_LOGIN = "Invalid email or password"

STATUS_ACTIONS = {
    "activate": AccountStatus.ACTIVE,
    "deactivate": AccountStatus.INACTIVE,
    "suspend": AccountStatus.SUSPENDED,
    "unban": AccountStatus.ACTIVE,
}

USER_EXPORT_COLUMNS = ["Name", "Email", "Role", "Status", "Branch", "Created", "Last Login"]

_SORT_KEYS: dict[str, Callable[[UserAccount], object]] = {
    "name": lambda u: u.full_name.lower(),
    "email": lambda u: u.email.lower(),
    "role": lambda u: u.role,
    "created_at": lambda u: u.created_at or datetime.min,
    "last_login_at": lambda u: u.last_login_at or datetime.min,
}


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: int
    email: str
    name: str
    role: str
    branch: Optional[str]
    session_id: str


class AuthService:
    """Use case: authenticate user (login) and track the login session."""

    def __init__(
        self,
        users: UserRepository,
        activity: ActivityRepository,
        sessions: SessionRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._users = users
        self._activity = activity
        self._sessions = sessions
        self._clock = clock

    def authenticate(
        self,
        email: str,
        password: str,
        *,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> SessionUser:
        now = self._clock()
        device = describe_device(user_agent)
        email = (email or "").strip().lower()

        user = self._users.get_by_email(email) if email else None
        try:
            ok = bool(user) and check_password_hash(user.password_hash, password or "")
        except ValueError:
            # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
            ok = False

        if not user or not ok or user.status != AccountStatus.ACTIVE:
            self._activity.record(
                user_email=email or "(blank)",
                user_name=user.full_name if user else email,
                role=user.role if user else None,
                branch=user.branch if user else None,
                module="auth",
                action="login_failed",
                details="Account suspended" if user and user.is_banned else "Failed login",
                ip_address=ip_address,
                device=device,
                created_at=now,
            )
            logger.info("Rejected login for %s", email or "(blank)")
            raise AuthenticationError(_INVALID_LOGIN)

        session = UserSession(
            session_id=uuid.uuid4().hex,
            user_id=user.user_id,
            user_email=user.email,
            user_name=user.full_name,
            ip_address=ip_address,
            device=device,
            started_at=now,
            last_seen_at=now,
        )
        self._sessions.create(session)
        self._users.touch_last_login(user.user_id, now)
        self._activity.record(
            user_email=user.email,
            user_name=user.full_name,
            role=user.role,
            branch=user.branch,
            module="auth",
            action="login_success",
            details="Successful login",
            ip_address=ip_address,
            device=device,
            created_at=now,
        )

        return SessionUser(
            user_id=user.user_id,
            email=user.email,
            name=user.full_name or user.email,
            role=user.role,
            branch=user.branch,
            session_id=session.session_id,
        )

    def logout(self, session_id: Optional[str]) -> None:
        if session_id:
            self._sessions.revoke(session_id)

    def is_session_valid(self, session_id: Optional[str]) -> bool:
        """Refresh the session heartbeat; False once it has been revoked."""

        if not session_id:
            return False
        return self._sessions.touch(session_id, self._clock())

    def resolve_session(self, session_id: Optional[str], user_id: Optional[int]) -> Optional[UserAccount]:
        """Current account behind a signed-in browser, or None once it must sign in again.

        A session whose account was deleted or is no longer active is revoked.
        """

        if user_id is None or not self.is_session_valid(session_id):
            return None
        user = self._users.get_by_id(int(user_id))
        if user is None or user.status != AccountStatus.ACTIVE:
            self._sessions.revoke(session_id)
            logger.info("Closed session %s of unavailable account #%s", session_id, user_id)
            return None
        return user


class UserAccountService:
    """Use case: manage back-office accounts (admin)."""

    def __init__(
        self,
        users: UserRepository,
        audit: AccountAuditRepository,
        sessions: Optional[SessionRepository] = None,
    ):
        self._users = users
        self._audit = audit
        self._sessions = sessions

    def _get(self, user_id: int) -> UserAccount:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found")
        return user

    def get_account(self, user_id: int) -> UserAccount:
        return self._get(user_id)

    def list_accounts(
        self,
        *,
        search: Optional[str] = None,
        role: Optional[str] = None,
        status: Optional[str] = None,
        sort_key: str = "created_at",
        sort_dir: str = "desc",
    ) -> dict:
        accounts = list(self._users.list_accounts())

        rows = accounts
        if search:
            needle = search.strip().lower()
            rows = [u for u in rows if needle in u.full_name.lower() or needle in u.email.lower()]
        if role:
            rows = [u for u in rows if u.role == role]
        if status:
            rows = [u for u in rows if u.status.value == status]

        key = _SORT_KEYS.get(sort_key, _SORT_KEYS["created_at"])
        rows = sorted(rows, key=key, reverse=(sort_dir != "asc"))

        counts = {"total": len(accounts)}
        for s in AccountStatus:
            counts[s.value] = sum(1 for u in accounts if u.status == s)

        return {"users": [u.to_view() for u in rows], "counts": counts}

    def _end_sessions(self, user: UserAccount) -> None:
        if self._sessions is None:
            return
        revoked = self._sessions.revoke_for_user(user.email)
        if revoked:
            logger.info("Revoked %s session(s) of %s", revoked, user.email)

    def _validate_role(self, role: str) -> str:
        role = require_non_empty(role, "Role")
        if not self._users.role_exists(role):
            raise ValidationError("Unknown role", {"role": "Unknown role"})
        return role

    def _validate_unique_email(self, email: str, *, exclude_user_id: Optional[int] = None) -> str:
        email = require_email(email)
        existing = self._users.get_by_email(email)
        if existing and existing.user_id != exclude_user_id:
            raise ValidationError("Email is already in use", {"email": "Email is already in use"})
        return email

    def create_account(
        self,
        *,
        acting_user_id: Optional[int],
        email: str,
        first_name: str,
        last_name: str,
        password: str,
        role: str,
        branch: Optional[str] = None,
    ) -> UserAccount:
        first = require_max_length(require_non_empty(first_name, "First name"), "First name", 100)
        last = require_max_length(require_non_empty(last_name, "Last name"), "Last name", 100)
        email = self._validate_unique_email(email)
        require_min_length(password, "Password", MIN_PASSWORD_LENGTH)
        role = self._validate_role(role)

        user_id = self._users.create(
            email=email,
            first_name=first,
            last_name=last,
            password_hash=generate_password_hash(password),
            role=role,
            branch=(branch or "").strip() or None,
            status=AccountStatus.ACTIVE,
        )
        self._audit.add(user_id=user_id, action="create", performed_by=acting_user_id, details={"email": email, "role": role})
        logger.info("Account %s created by %s", email, acting_user_id)
        return self._get(user_id)

    def update_account(
        self,
        user_id: int,
        *,
        acting_user_id: Optional[int],
        email: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        password: Optional[str] = None,
        role: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> UserAccount:
        user = self._get(user_id)
        changes: dict = {}

        if email is not None:
            changes["email"] = self._validate_unique_email(email, exclude_user_id=user.user_id)
        if first_name is not None:
            changes["first_name"] = require_max_length(require_non_empty(first_name, "First name"), "First name", 100)
        if last_name is not None:
            changes["last_name"] = require_max_length(require_non_empty(last_name, "Last name"), "Last name", 100)
        if password:
            require_min_length(password, "Password", MIN_PASSWORD_LENGTH)
            changes["password_hash"] = generate_password_hash(password)
        if role is not None:
            changes["role"] = self._validate_role(role)
        if branch is not None:
            changes["branch"] = branch.strip() or None

        self._users.update(user.user_id, changes=changes)
        audited = {k: v for k, v in changes.items() if k != "password_hash"}
        if "password_hash" in changes:
            audited["password"] = "changed"
        self._audit.add(user_id=user.user_id, action="update", performed_by=acting_user_id, details=audited)
        return self._get(user.user_id)

    def set_status(self, user_id: int, action: str, *, acting_user_id: Optional[int]) -> UserAccount:
        new_status = STATUS_ACTIONS.get((action or "").strip().lower())
        if new_status is None:
            raise ValidationError(f"Unknown status action: {action!r}")

        user = self._get(user_id)
        if acting_user_id is not None and int(acting_user_id) == user.user_id:
            raise AuthorizationError("You cannot change the status of your own account")

        self._users.set_status(user.user_id, new_status)
        self._audit.add(
            user_id=user.user_id,
            action=action,
            performed_by=acting_user_id,
            details={"from": user.status.value, "to": new_status.value},
        )
        if new_status != AccountStatus.ACTIVE:
            self._end_sessions(user)
        logger.info("Account %s: %s -> %s", user.email, user.status.value, new_status.value)
        return self._get(user.user_id)

    def delete_account(self, user_id: int, *, acting_user_id: Optional[int]) -> None:
        user = self._get(user_id)
        if acting_user_id is not None and int(acting_user_id) == user.user_id:
            raise AuthorizationError("You cannot delete your own account")

        if not self._users.delete(user.user_id):
            raise ValidationError("Failed to delete user")
        self._end_sessions(user)
        self._audit.add(user_id=user.user_id, action="delete", performed_by=acting_user_id, details={"email": user.email})

    def audit_log(self, *, limit: int = DEFAULT_LIST_LIMIT) -> list[dict]:
        return [
            {
                "audit_id": e.audit_id,
                "user_id": e.user_id,
                "action": e.action,
                "performed_by": e.performed_by,
                "details": e.details,
                "created_at": e.created_at,
            }
            for e in self._audit.list_recent(limit=int(limit))
        ]

    @staticmethod
    def export_rows(users: list[dict]) -> list[dict]:
        return [
            {
                "Name": u["name"],
                "Email": u["email"],
                "Role": u["role"],
                "Status": u["status"],
                "Branch": u.get("branch") or "",
                "Created": u["created_at"].strftime("%Y-%m-%d %H:%M") if u.get("created_at") else "",
                "Last Login": u["last_login_at"].strftime("%Y-%m-%d %H:%M") if u.get("last_login_at") else "",
            }
            for u in users
        ]
