from __future__ import annotations

import dataclasses
from datetime import datetime

import pytest

from src.agrivet_admin.agrivet_admin.core.enums import PermissionAction, PermissionModule, RoleScope
from src.agrivet_admin.agrivet_admin.core.exceptions import NotFoundError, ValidationError
from src.agrivet_admin.agrivet_admin.permissions.model import BASELINE_MATRIX, PermissionMatrix, Role
from src.agrivet_admin.agrivet_admin.permissions.service import RolePermissionService, slugify_role_name


class FakeRoleRepo:
    def __init__(self):
        self.roles: dict[str, Role] = {}
        self.user_roles: dict[int, str] = {}

    def list_roles(self):
        return list(self.roles.values())

    def get(self, role_id):
        return self.roles.get(role_id)

    def create(self, role):
        self.roles[role.role_id] = dataclasses.replace(role, created_at=datetime(2026, 3, 1, 9, 0))

    def update_details(self, role_id, *, display_name, description, scope):
        self.roles[role_id] = dataclasses.replace(
            self.roles[role_id], display_name=display_name, description=description, scope=scope
        )

    def save_matrix(self, role_id, matrix):
        self.roles[role_id] = dataclasses.replace(self.roles[role_id], matrix=matrix)

    def delete(self, role_id, *, reassign_to=None):
        moved = 0
        if reassign_to:
            for uid, role in self.user_roles.items():
                if role == role_id:
                    self.user_roles[uid] = reassign_to
                    moved += 1
        self.roles.pop(role_id, None)
        return moved

    def user_counts(self):
        counts: dict[str, int] = {}
        for role in self.user_roles.values():
            counts[role] = counts.get(role, 0) + 1
        return counts

    def members(self, role_id):
        return [
            {"user_id": uid, "email": f"user{uid}@shop.test", "first_name": "User", "last_name": str(uid)}
            for uid, role in self.user_roles.items()
            if role == role_id
        ]


@pytest.fixture()
def repo():
    r = FakeRoleRepo()
    r.roles["admin"] = Role(role_id="admin", display_name="Admin", scope=RoleScope.GLOBAL, is_system=True, matrix=PermissionMatrix.full())
    r.roles["cashier"] = Role(role_id="cashier", display_name="Cashier", matrix=BASELINE_MATRIX)
    r.user_roles = {1: "admin", 2: "cashier", 3: "cashier"}
    return r


def test_slug_lowercases_and_dashes_whitespace():
    assert slugify_role_name("  Branch   Manager ") == "branch-manager"


def test_create_role_uses_baseline_matrix(repo):
    svc = RolePermissionService(repo)

    role = svc.create_role(name="Stock Clerk", description="Counts stock")

    assert role.role_id == "stock-clerk"
    assert role.scope == RoleScope.BRANCH
    assert role.matrix.allows(PermissionModule.SALES, PermissionAction.CREATE)
    assert role.matrix.allows(PermissionModule.DASHBOARD, PermissionAction.READ)
    assert not role.matrix.allows(PermissionModule.SETTINGS, PermissionAction.READ)


def test_create_role_rejects_blank_and_duplicate_names(repo):
    svc = RolePermissionService(repo)

    with pytest.raises(ValidationError):
        svc.create_role(name="   ")
    with pytest.raises(ValidationError) as exc:
        svc.create_role(name="CASHIER")
    assert "name" in exc.value.errors


def test_matrix_view_contains_every_cell(repo):
    view = RolePermissionService(repo).get_role_view("cashier")

    assert set(view["permissions"]) == {m.value for m in PermissionModule}
    assert all(set(actions) == {a.value for a in PermissionAction} for actions in view["permissions"].values())
    assert view["permissions"]["staff"]["delete"] is False
    assert view["user_count"] == 2


def test_toggle_flips_one_cell(repo):
    svc = RolePermissionService(repo)

    role = svc.toggle_permission("cashier", "reports", "export")
    assert role.matrix.allows(PermissionModule.REPORTS, PermissionAction.EXPORT)

    role = svc.toggle_permission("cashier", "reports", "export")
    assert not role.matrix.allows(PermissionModule.REPORTS, PermissionAction.EXPORT)


def test_toggle_unknown_cell_is_rejected(repo):
    with pytest.raises(ValidationError):
        RolePermissionService(repo).toggle_permission("cashier", "payroll", "read")


def test_set_matrix_replaces_grid(repo):
    svc = RolePermissionService(repo)

    role = svc.set_matrix("cashier", {"staff": {"read": True, "update": False}})

    assert role.matrix.allows(PermissionModule.STAFF, PermissionAction.READ)
    assert not role.matrix.allows(PermissionModule.SALES, PermissionAction.READ)


def test_list_roles_defaults_to_user_count_descending(repo):
    svc = RolePermissionService(repo)

    roles = svc.list_roles()

    assert [r["role_id"] for r in roles] == ["cashier", "admin"]
    assert [r["role_id"] for r in svc.list_roles(sort_key="name", sort_dir="asc")] == ["admin", "cashier"]
    assert [r["role_id"] for r in svc.list_roles(scope="global")] == ["admin"]


def test_system_role_cannot_be_deleted(repo):
    with pytest.raises(ValidationError):
        RolePermissionService(repo).delete_role("admin")


def test_delete_role_with_members_requires_reassignment(repo):
    svc = RolePermissionService(repo)

    with pytest.raises(ValidationError):
        svc.delete_role("cashier")
    with pytest.raises(ValidationError):
        svc.delete_role("cashier", reassign_to="cashier")
    with pytest.raises(ValidationError):
        svc.delete_role("cashier", reassign_to="nobody")

    moved = svc.delete_role("cashier", reassign_to="admin")

    assert moved == 2
    assert "cashier" not in repo.roles
    assert set(repo.user_roles.values()) == {"admin"}


def test_delete_role_without_members_moves_nobody(repo):
    repo.roles["clerk"] = Role(role_id="clerk", display_name="Clerk", matrix=BASELINE_MATRIX)

    assert RolePermissionService(repo).delete_role("clerk", reassign_to="admin") == 0
    assert "clerk" not in repo.roles
    assert repo.user_roles == {1: "admin", 2: "cashier", 3: "cashier"}


def test_has_permission_and_super_admin_bypass(repo):
    svc = RolePermissionService(repo)

    assert svc.has_permission("cashier", PermissionModule.SALES, PermissionAction.READ)
    assert not svc.has_permission("cashier", PermissionModule.SETTINGS, PermissionAction.READ)
    assert not svc.has_permission("ghost", PermissionModule.SALES, PermissionAction.READ)
    assert not svc.has_permission("", PermissionModule.SALES, PermissionAction.READ)
    assert svc.has_permission("super-admin", PermissionModule.SETTINGS, PermissionAction.DELETE)


def test_members_of_unknown_role_raise(repo):
    svc = RolePermissionService(repo)

    assert [m["name"] for m in svc.members("cashier")] == ["User 2", "User 3"]
    with pytest.raises(NotFoundError):
        svc.members("ghost")
