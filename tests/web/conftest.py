from __future__ import annotations

import dataclasses
from datetime import datetime
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from werkzeug.security import generate_password_hash

from src.agrivet_admin.agrivet_admin.core.enums import AccountStatus
from src.agrivet_admin.agrivet_admin.main import create_app
from src.agrivet_admin.agrivet_admin.permissions.model import BASELINE_MATRIX, PermissionMatrix, Role
from src.agrivet_admin.agrivet_admin.permissions.service import RolePermissionService
from src.agrivet_admin.agrivet_admin.users.activity_service import ActivityService
from src.agrivet_admin.agrivet_admin.users.model import UserAccount
from src.agrivet_admin.agrivet_admin.users.service import AuthService

NOW = datetime(2026, 3, 12, 9, 0)
PASSWORD = "secret-pass"


class InMemoryRoles:
    def __init__(self, roles):
        self.roles = {r.role_id: r for r in roles}

    def list_roles(self):
        return list(self.roles.values())

    def get(self, role_id):
        return self.roles.get(role_id)

    def user_counts(self):
        return {}


class InMemoryUsers:
    def __init__(self, users):
        self.users = {u.user_id: u for u in users}

    def get_by_id(self, user_id):
        return self.users.get(int(user_id))

    def get_by_email(self, email):
        return next((u for u in self.users.values() if u.email == email), None)

    def touch_last_login(self, user_id, at):
        self.users[user_id] = dataclasses.replace(self.users[user_id], last_login_at=at)

    def change(self, user_id, **changes):
        self.users[user_id] = dataclasses.replace(self.users[user_id], **changes)


class InMemoryActivity:
    def __init__(self):
        self.events: list[dict] = []

    def record(self, **kw):
        self.events.append(kw)
        return len(self.events)


class InMemorySessions:
    def __init__(self):
        self.sessions = {}

    def create(self, session):
        self.sessions[session.session_id] = session

    def get(self, session_id):
        return self.sessions.get(session_id)

    def touch(self, session_id, at):
        s = self.sessions.get(session_id)
        return bool(s) and not s.is_revoked

    def revoke(self, session_id):
        s = self.sessions.get(session_id)
        if not s or s.is_revoked:
            return False
        self.sessions[session_id] = dataclasses.replace(s, is_revoked=True)
        return True


def _account(user_id: int, email: str, role: str, **kw) -> UserAccount:
    return UserAccount(
        user_id=user_id,
        email=email,
        first_name=role.title(),
        last_name="Tester",
        password_hash=generate_password_hash(PASSWORD),
        role=role,
        branch="Main Branch",
        **kw,
    )


@pytest.fixture()
def container():
    roles = InMemoryRoles(
        [
            Role(role_id="cashier", display_name="Cashier", matrix=BASELINE_MATRIX),
            Role(
                role_id="marketer",
                display_name="Marketer",
                matrix=PermissionMatrix.of(("dashboard", "read"), ("marketing", "read"), ("marketing", "create")),
            ),
        ]
    )
    users = InMemoryUsers(
        [
            _account(1, "cashier@agrivet.test", "cashier"),
            _account(2, "marketer@agrivet.test", "marketer"),
            _account(3, "banned@agrivet.test", "marketer", status=AccountStatus.SUSPENDED),
        ]
    )
    activity = InMemoryActivity()
    sessions = InMemorySessions()
    clock = lambda: NOW  # noqa: E731

    return SimpleNamespace(
        conn=None,
        permission_service=RolePermissionService(roles),
        auth_service=AuthService(users, activity, sessions, clock=clock),
        activity_service=ActivityService(activity, sessions, users, clock=clock),
        activity_events=activity.events,
        accounts=users,
        user_account_service=MagicMock(),
        staff_service=MagicMock(),
        attendance_service=MagicMock(),
        leave_service=MagicMock(),
        sales_dashboard_service=MagicMock(),
        daily_sales_service=MagicMock(),
        product_sales_service=MagicMock(),
        sales_value_service=MagicMock(),
        sales_records_service=MagicMock(),
        campaign_service=MagicMock(),
        image_storage=MagicMock(),
        dashboard_service=MagicMock(),
    )


@pytest.fixture()
def app(container, monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    return create_app(container)


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def login(client):
    def _login(email: str, password: str = PASSWORD):
        return client.post("/api/auth/login", json={"email": email, "password": password})

    return _login
