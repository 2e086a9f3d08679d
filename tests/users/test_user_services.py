from __future__ import annotations

import dataclasses
from datetime import datetime

import pytest
from werkzeug.security import generate_password_hash

from src.agrivet_admin.agrivet_admin.core.enums import AccountStatus
from src.agrivet_admin.agrivet_admin.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from src.agrivet_admin.agrivet_admin.users.model import UserAccount
from src.agrivet_admin.agrivet_admin.users.service import AuthService, UserAccountService

NOW = datetime(2026, 3, 10, 9, 30)


class FakeUsersRepo:
    def __init__(self):
        self.users: dict[int, UserAccount] = {}
        self.roles = {"admin", "cashier", "manager"}
        self._next_id = 1

    def add(self, **kw) -> UserAccount:
        uid = self._next_id
        self._next_id += 1
        defaults = dict(
            user_id=uid,
            first_name="Test",
            last_name=f"User{uid}",
            password_hash=generate_password_hash("secret-pass"),
            role="cashier",
            created_at=datetime(2026, 1, uid, 8, 0),
        )
        defaults.update(kw)
        user = UserAccount(**defaults)
        self.users[uid] = user
        return user

    def get_by_id(self, user_id):
        return self.users.get(int(user_id))

    def get_by_email(self, email):
        return next((u for u in self.users.values() if u.email.lower() == email.lower()), None)

    def list_accounts(self):
        return list(self.users.values())

    def create(self, *, email, first_name, last_name, password_hash, role, branch, status):
        return self.add(
            email=email,
            first_name=first_name,
            last_name=last_name,
            password_hash=password_hash,
            role=role,
            branch=branch,
            status=status,
        ).user_id

    def update(self, user_id, *, changes):
        self.users[user_id] = dataclasses.replace(self.users[user_id], **changes)
        return True

    def set_status(self, user_id, status):
        self.users[user_id] = dataclasses.replace(self.users[user_id], status=status)
        return True

    def delete(self, user_id):
        return self.users.pop(user_id, None) is not None

    def touch_last_login(self, user_id, at):
        self.users[user_id] = dataclasses.replace(self.users[user_id], last_login_at=at)

    def role_exists(self, role):
        return role in self.roles


class FakeAuditRepo:
    def __init__(self):
        self.entries: list[dict] = []

    def add(self, *, user_id, action, performed_by, details):
        self.entries.append({"user_id": user_id, "action": action, "performed_by": performed_by, "details": details})
        return len(self.entries)

    def list_recent(self, *, limit):
        return []


class FakeActivityRepo:
    def __init__(self):
        self.events: list[dict] = []

    def record(self, **kw):
        self.events.append(kw)
        return len(self.events)


class FakeSessionRepo:
    def __init__(self):
        self.sessions = {}

    def create(self, session):
        self.sessions[session.session_id] = session

    def revoke(self, session_id):
        s = self.sessions.get(session_id)
        if not s or s.is_revoked:
            return False
        self.sessions[session_id] = dataclasses.replace(s, is_revoked=True)
        return True

    def touch(self, session_id, at):
        s = self.sessions.get(session_id)
        return bool(s) and not s.is_revoked

    def revoke_for_user(self, user_email, *, keep_session_id=None):
        revoked = 0
        for sid, s in list(self.sessions.items()):
            if s.user_email == user_email and sid != keep_session_id and not s.is_revoked:
                self.sessions[sid] = dataclasses.replace(s, is_revoked=True)
                revoked += 1
        return revoked


@pytest.fixture()
def users():
    repo = FakeUsersRepo()
    repo.add(email="admin@agrivet.test", role="admin", first_name="Ana", last_name="Reyes")
    repo.add(email="cashier@agrivet.test", first_name="Ben", last_name="Cruz", branch="Main")
    repo.add(email="banned@agrivet.test", status=AccountStatus.SUSPENDED)
    return repo


def _auth(users):
    activity = FakeActivityRepo()
    sessions = FakeSessionRepo()
    return AuthService(users, activity, sessions, clock=lambda: NOW), activity, sessions


def test_authenticate_success_opens_session_and_logs_activity(users):
    auth, activity, sessions = _auth(users)

    s_user = auth.authenticate(" Cashier@Agrivet.test ", "secret-pass", ip_address="10.0.0.5", user_agent="Mozilla/5.0 (Windows NT 10.0) Chrome/120.0")

    assert s_user.email == "cashier@agrivet.test"
    assert s_user.name == "Ben Cruz"
    assert s_user.branch == "Main"
    assert s_user.session_id in sessions.sessions
    assert users.get_by_id(s_user.user_id).last_login_at == NOW
    assert activity.events[-1]["action"] == "login_success"
    assert activity.events[-1]["device"] == "Chrome · Windows"
    assert auth.is_session_valid(s_user.session_id)


@pytest.mark.parametrize(
    "email,password",
    [
        ("cashier@agrivet.test", "wrong-pass"),
        ("nobody@agrivet.test", "secret-pass"),
        ("banned@agrivet.test", "secret-pass"),
        ("", ""),
    ],
)
def test_authenticate_rejects_with_one_generic_message(users, email, password):
    auth, activity, sessions = _auth(users)

    with pytest.raises(AuthenticationError) as exc:
        auth.authenticate(email, password)

    assert str(exc.value) == "Invalid email or password"
    assert activity.events[-1]["action"] == "login_failed"
    assert not sessions.sessions


def test_logout_revokes_session(users):
    auth, _, sessions = _auth(users)
    s_user = auth.authenticate("admin@agrivet.test", "secret-pass")

    auth.logout(s_user.session_id)

    assert not auth.is_session_valid(s_user.session_id)
    assert not auth.is_session_valid(None)


def test_resolve_session_follows_the_account(users):
    auth, _, sessions = _auth(users)
    s_user = auth.authenticate("cashier@agrivet.test", "secret-pass")

    assert auth.resolve_session(s_user.session_id, s_user.user_id).role == "cashier"

    users.update(s_user.user_id, changes={"role": "manager"})
    assert auth.resolve_session(s_user.session_id, s_user.user_id).role == "manager"

    users.set_status(s_user.user_id, AccountStatus.INACTIVE)
    assert auth.resolve_session(s_user.session_id, s_user.user_id) is None
    assert sessions.sessions[s_user.session_id].is_revoked
    assert auth.resolve_session(None, s_user.user_id) is None


def test_resolve_session_of_deleted_account(users):
    auth, _, sessions = _auth(users)
    s_user = auth.authenticate("cashier@agrivet.test", "secret-pass")

    users.delete(s_user.user_id)

    assert auth.resolve_session(s_user.session_id, s_user.user_id) is None
    assert sessions.sessions[s_user.session_id].is_revoked


def test_list_accounts_filters_sorts_and_counts(users):
    svc = UserAccountService(users, FakeAuditRepo())

    result = svc.list_accounts(search="ben")
    assert [u["email"] for u in result["users"]] == ["cashier@agrivet.test"]
    assert result["counts"] == {"total": 3, "active": 2, "inactive": 0, "suspended": 1}

    by_name = svc.list_accounts(sort_key="name", sort_dir="asc")["users"]
    assert [u["name"] for u in by_name] == ["Ana Reyes", "Ben Cruz", "Test User3"]

    assert [u["status"] for u in svc.list_accounts(status="suspended")["users"]] == ["suspended"]
    assert len(svc.list_accounts(role="cashier")["users"]) == 2


def test_create_account_validates_and_audits(users):
    audit = FakeAuditRepo()
    svc = UserAccountService(users, audit)

    with pytest.raises(ValidationError) as exc:
        svc.create_account(acting_user_id=1, email="not-an-email", first_name="C", last_name="D", password="longenough", role="cashier")
    assert "email" in exc.value.errors

    with pytest.raises(ValidationError):
        svc.create_account(acting_user_id=1, email="admin@agrivet.test", first_name="C", last_name="D", password="longenough", role="cashier")
    with pytest.raises(ValidationError):
        svc.create_account(acting_user_id=1, email="new@agrivet.test", first_name="C", last_name="D", password="short", role="cashier")
    with pytest.raises(ValidationError):
        svc.create_account(acting_user_id=1, email="new@agrivet.test", first_name="C", last_name="D", password="longenough", role="wizard")

    user = svc.create_account(
        acting_user_id=1, email="New@Agrivet.test", first_name=" Cara ", last_name="Diaz", password="longenough", role="manager"
    )

    assert user.email == "new@agrivet.test"
    assert user.full_name == "Cara Diaz"
    assert user.password_hash != "longenough"
    assert audit.entries[-1]["action"] == "create"
    assert audit.entries[-1]["performed_by"] == 1


def test_update_account_audits_without_password_hash(users):
    audit = FakeAuditRepo()
    svc = UserAccountService(users, audit)

    user = svc.update_account(2, acting_user_id=1, last_name="Santos", password="another-secret")

    assert user.last_name == "Santos"
    assert audit.entries[-1]["details"] == {"last_name": "Santos", "password": "changed"}


@pytest.mark.parametrize(
    "action,expected",
    [
        ("activate", AccountStatus.ACTIVE),
        ("deactivate", AccountStatus.INACTIVE),
        ("suspend", AccountStatus.SUSPENDED),
        ("unban", AccountStatus.ACTIVE),
    ],
)
def test_set_status_actions(users, action, expected):
    svc = UserAccountService(users, FakeAuditRepo())

    assert svc.set_status(3, action, acting_user_id=1).status == expected


def test_admin_cannot_change_or_delete_own_account(users):
    svc = UserAccountService(users, FakeAuditRepo())

    with pytest.raises(AuthorizationError):
        svc.set_status(1, "suspend", acting_user_id=1)
    with pytest.raises(AuthorizationError):
        svc.delete_account(1, acting_user_id=1)
    with pytest.raises(ValidationError):
        svc.set_status(2, "explode", acting_user_id=1)


def test_delete_account(users):
    audit = FakeAuditRepo()
    svc = UserAccountService(users, audit)

    svc.delete_account(2, acting_user_id=1)

    assert 2 not in users.users
    assert audit.entries[-1] == {"user_id": 2, "action": "delete", "performed_by": 1, "details": {"email": "cashier@agrivet.test"}}
    with pytest.raises(NotFoundError):
        svc.delete_account(2, acting_user_id=1)


def test_suspend_and_delete_end_open_sessions(users):
    auth, _, sessions = _auth(users)
    svc = UserAccountService(users, FakeAuditRepo(), sessions)
    cashier = auth.authenticate("cashier@agrivet.test", "secret-pass")
    admin = auth.authenticate("admin@agrivet.test", "secret-pass")

    svc.set_status(cashier.user_id, "activate", acting_user_id=admin.user_id)
    assert auth.is_session_valid(cashier.session_id)

    svc.set_status(cashier.user_id, "suspend", acting_user_id=admin.user_id)
    assert not auth.is_session_valid(cashier.session_id)
    assert auth.is_session_valid(admin.session_id)

    svc.set_status(cashier.user_id, "unban", acting_user_id=admin.user_id)
    again = auth.authenticate("cashier@agrivet.test", "secret-pass")
    svc.delete_account(cashier.user_id, acting_user_id=admin.user_id)
    assert not auth.is_session_valid(again.session_id)
