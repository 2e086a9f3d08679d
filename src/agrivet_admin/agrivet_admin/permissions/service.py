from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Mapping, Optional

from ..common.formatting import full_name
from ..common.validators import require_max_length, require_non_empty
from ..core.constants import SUPER_ADMIN_ROLE
from ..core.enums import PermissionAction, PermissionModule, RoleScope
from ..core.exceptions import NotFoundError, ValidationError
from .model import BASELINE_MATRIX, PermissionMatrix, Role
from .repository import RoleRepository

logger = logging.getLogger(__name__)

_SORT_KEYS = {
    "name": lambda v: v["name"].lower(),
    "users": lambda v: v["user_count"],
    "created_at": lambda v: v["created_at"] or datetime.min,
    "scope": lambda v: v["scope"],
}


def slugify_role_name(name: str) -> str:
    return re.sub(r"\s+", "-", (name or "").strip().lower())


def _parse_scope(value) -> RoleScope:
    try:
        return RoleScope(value or RoleScope.BRANCH.value)
    except ValueError:
        raise ValidationError("Scope must be 'global' or 'branch'", {"scope": "Invalid scope"})


class RolePermissionService:
    """Roles and their module x action permission grid."""

    def __init__(self, roles: RoleRepository):
        self._roles = roles

    def list_roles(
        self,
        *,
        search: Optional[str] = None,
        scope: Optional[str] = None,
        sort_key: str = "users",
        sort_dir: str = "desc",
    ) -> list[dict]:
        counts = self._roles.user_counts()
        views = [r.to_view(user_count=counts.get(r.role_id, 0)) for r in self._roles.list_roles()]

        if search:
            needle = search.strip().lower()
            views = [
                v
                for v in views
                if needle in v["name"].lower() or needle in v["role_id"] or needle in v["description"].lower()
            ]
        if scope:
            views = [v for v in views if v["scope"] == scope]

        key = _SORT_KEYS.get(sort_key, _SORT_KEYS["users"])
        views.sort(key=key, reverse=(sort_dir != "asc"))
        return views

    def get_role(self, role_id: str) -> Role:
        role = self._roles.get(role_id)
        if not role:
            raise NotFoundError("Role not found")
        return role

    def get_role_view(self, role_id: str) -> dict:
        role = self.get_role(role_id)
        return role.to_view(user_count=self._roles.user_counts().get(role.role_id, 0))

    def create_role(
        self,
        *,
        name: str,
        description: Optional[str] = None,
        scope: Optional[str] = None,
        permissions: Optional[Mapping] = None,
    ) -> Role:
        display_name = require_max_length(require_non_empty(name, "Name"), "Name", 100)
        role_id = slugify_role_name(display_name)
        if self._roles.get(role_id):
            raise ValidationError("A role with this name already exists", {"name": "A role with this name already exists"})

        matrix = PermissionMatrix.from_dict(permissions) if permissions is not None else BASELINE_MATRIX
        role = Role(
            role_id=role_id,
            display_name=display_name,
            description=(description or "").strip() or None,
            scope=_parse_scope(scope),
            matrix=matrix,
        )
        self._roles.create(role)
        logger.info("Role created: %s", role_id)
        return self.get_role(role_id)

    def update_role(
        self,
        role_id: str,
        *,
        display_name: Optional[str] = None,
        description: Optional[str] = None,
        scope: Optional[str] = None,
    ) -> Role:
        role = self.get_role(role_id)
        name = role.display_name
        if display_name is not None:
            name = require_max_length(require_non_empty(display_name, "Name"), "Name", 100)

        self._roles.update_details(
            role_id,
            display_name=name,
            description=(description.strip() or None) if description is not None else role.description,
            scope=_parse_scope(scope) if scope is not None else role.scope,
        )
        return self.get_role(role_id)

    def toggle_permission(self, role_id: str, module: str, action: str) -> Role:
        role = self.get_role(role_id)
        try:
            module_enum = PermissionModule(module)
            action_enum = PermissionAction(action)
        except ValueError:
            raise ValidationError(f"Unknown permission: {module}.{action}")

        self._roles.save_matrix(role_id, role.matrix.toggled(module_enum, action_enum))
        return self.get_role(role_id)

    def set_matrix(self, role_id: str, permissions: Mapping) -> Role:
        self.get_role(role_id)
        self._roles.save_matrix(role_id, PermissionMatrix.from_dict(permissions))
        logger.info("Permission matrix replaced for role %s", role_id)
        return self.get_role(role_id)

    def delete_role(self, role_id: str, *, reassign_to: Optional[str] = None) -> int:
        """Delete a role; members move to ``reassign_to``. Returns how many moved."""

        role = self.get_role(role_id)
        if role.is_system:
            raise ValidationError("System roles cannot be deleted")

        member_count = self._roles.user_counts().get(role_id, 0)
        if member_count:
            if not reassign_to:
                raise ValidationError(
                    f"{member_count} user(s) still have this role; choose a role to reassign them to",
                    {"reassign_to": "Required while the role has members"},
                )
            if reassign_to == role_id:
                raise ValidationError("Cannot reassign users to the role being deleted", {"reassign_to": "Pick a different role"})
            if not self._roles.get(reassign_to):
                raise ValidationError("Target role does not exist", {"reassign_to": "Target role does not exist"})

        moved = self._roles.delete(role_id, reassign_to=reassign_to if member_count else None)
        logger.info("Role deleted: %s (moved %s user(s) to %s)", role_id, moved, reassign_to)
        return moved

    def has_permission(self, role_id: str, module: PermissionModule, action: PermissionAction) -> bool:
        if not role_id:
            return False
        if role_id == SUPER_ADMIN_ROLE:
            return True
        role = self._roles.get(role_id)
        if not role:
            return False
        return role.matrix.allows(module, action)

    def permissions_for(self, role_id: str) -> dict:
        """Effective grid of a role, as sent to the client after login."""

        if role_id == SUPER_ADMIN_ROLE:
            return PermissionMatrix.full().to_dict()
        role = self._roles.get(role_id)
        return (role.matrix if role else PermissionMatrix()).to_dict()

    def members(self, role_id: str) -> list[dict]:
        self.get_role(role_id)
        return [
            {
                "user_id": int(m["user_id"]),
                "name": full_name(m.get("first_name"), m.get("last_name")),
                "email": m["email"],
                "branch": m.get("branch"),
                "status": m.get("status"),
                "last_login_at": m.get("last_login_at"),
            }
            for m in self._roles.members(role_id)
        ]
