from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.devices import describe_device
from ..core.constants import ONLINE_WINDOW_MINUTES
from ..core.enums import AccountStatus
from ..core.exceptions import NotFoundError
from .model import ActivityEvent, UserSession
from .repository import ActivityRepository, SessionRepository, UserRepository

ACTIVITY_EXPORT_COLUMNS = ["Timestamp", "User", "Email", "Role", "Branch", "Module", "Action", "Details", "IP", "Device"]


class ActivityService:
    """Audit trail of what back-office users do, plus their login sessions."""

    def __init__(
        self,
        activity: ActivityRepository,
        sessions: SessionRepository,
        users: UserRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._activity = activity
        self._sessions = sessions
        self._users = users
        self._clock = clock

    def record(
        self,
        *,
        user_email: str,
        user_name: str,
        module: str,
        action: str,
        role: Optional[str] = None,
        branch: Optional[str] = None,
        details: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> int:
        return self._activity.record(
            user_email=user_email,
            user_name=user_name,
            role=role,
            branch=branch,
            module=module,
            action=action,
            details=details,
            ip_address=ip_address,
            device=describe_device(user_agent),
            created_at=self._clock(),
        )

    def list_events(
        self,
        *,
        search: Optional[str] = None,
        role: Optional[str] = None,
        module: Optional[str] = None,
        action: Optional[str] = None,
        branch: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 500,
    ) -> list[ActivityEvent]:
        start = datetime.combine(date_from, datetime.min.time()) if date_from else None
        # date_to is inclusive: keep everything before the next midnight
        end = datetime.combine(date_to + timedelta(days=1), datetime.min.time()) if date_to else None

        events = list(
            self._activity.list_events(
                role=role,
                module=module,
                action=action,
                branch=branch,
                start=start,
                end=end,
                limit=int(limit),
            )
        )
        if search:
            needle = search.strip().lower()
            events = [
                e
                for e in events
                if needle in e.user_name.lower() or needle in e.user_email.lower() or needle in (e.details or "").lower()
            ]
        return events

    @staticmethod
    def summary(events: Sequence[ActivityEvent]) -> dict:
        logins = sum(1 for e in events if e.action == "login_success")
        failed = sum(1 for e in events if e.action == "login_failed")

        by_day: dict[str, set] = {}
        by_module: dict[str, int] = {}
        for e in events:
            by_day.setdefault(e.created_at.date().isoformat(), set()).add(e.user_email)
            by_module[e.module] = by_module.get(e.module, 0) + 1

        attempts = logins + failed
        return {
            "counters": {
                "total": len(events),
                "logins": logins,
                "failed": failed,
                "exports": sum(1 for e in events if e.action == "export"),
            },
            "dau": [{"date": day, "count": len(by_day[day])} for day in sorted(by_day)],
            "modules": [{"module": m, "count": c} for m, c in by_module.items()],
            "login_stats": {
                "success": logins,
                "failed": failed,
                "total": attempts,
                "success_rate": round(logins / attempts * 100) if attempts else 0,
            },
        }

    @staticmethod
    def export_rows(events: Sequence[ActivityEvent]) -> list[dict]:
        return [
            {
                "Timestamp": e.created_at.strftime("%Y-%m-%d %H:%M:%S"),
                "User": e.user_name,
                "Email": e.user_email,
                "Role": e.role or "",
                "Branch": e.branch or "",
                "Module": e.module,
                "Action": e.action,
                "Details": (e.details or "").replace("\n", " "),
                "IP": e.ip_address or "",
                "Device": e.device or "",
            }
            for e in events
        ]

    def list_sessions(self, *, current_session_id: Optional[str] = None) -> list[dict]:
        return [s.to_view(current_session_id=current_session_id) for s in self._sessions.list_open()]

    def revoke_session(self, session_id: str) -> None:
        if not self._sessions.revoke(session_id):
            raise NotFoundError("Session not found or already revoked")

    def revoke_other_sessions(self, user_email: str, *, current_session_id: Optional[str]) -> int:
        return self._sessions.revoke_for_user(user_email, keep_session_id=current_session_id)

    def active_users_overview(self) -> dict:
        """Who is online now (seen within the online window) and account counts."""

        cutoff = self._clock() - timedelta(minutes=ONLINE_WINDOW_MINUTES)
        latest: dict[int, UserSession] = {}
        for s in self._sessions.list_open():
            if s.last_seen_at >= cutoff:
                seen = latest.get(s.user_id)
                if seen is None or s.last_seen_at > seen.last_seen_at:
                    latest[s.user_id] = s

        accounts = list(self._users.list_accounts())
        by_id = {u.user_id: u for u in accounts}
        online = []
        for user_id, s in sorted(latest.items(), key=lambda kv: kv[1].last_seen_at, reverse=True):
            user = by_id.get(user_id)
            online.append(
                {
                    "user_id": user_id,
                    "name": s.user_name,
                    "email": s.user_email,
                    "role": user.role if user else None,
                    "branch": user.branch if user else None,
                    "device": s.device,
                    "ip_address": s.ip_address,
                    "last_seen_at": s.last_seen_at,
                }
            )

        counts = {"total": len(accounts), "online": len(online)}
        for status in AccountStatus:
            counts[status.value] = sum(1 for u in accounts if u.status == status)
        return {"online": online, "counts": counts}
