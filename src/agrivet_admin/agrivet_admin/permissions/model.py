from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, Iterable, Mapping, Optional, Tuple

from ..core.enums import PermissionAction, PermissionModule, RoleScope
from ..core.exceptions import ValidationError

MODULES: Tuple[PermissionModule, ...] = tuple(PermissionModule)
ACTIONS: Tuple[PermissionAction, ...] = tuple(PermissionAction)

Cell = Tuple[PermissionModule, PermissionAction]


@dataclass(frozen=True)
class PermissionMatrix:
    """Module x action grid; a cell absent from ``grants`` is denied."""

    grants: FrozenSet[Cell] = frozenset()

    def allows(self, module: PermissionModule, action: PermissionAction) -> bool:
        return (PermissionModule(module), PermissionAction(action)) in self.grants

    def toggled(self, module: PermissionModule, action: PermissionAction) -> "PermissionMatrix":
        cell = (PermissionModule(module), PermissionAction(action))
        return PermissionMatrix(self.grants ^ {cell})

    def cells(self) -> Iterable[Tuple[PermissionModule, PermissionAction, bool]]:
        """Every cell of the grid, the shape persisted in role_permissions."""
        for module in MODULES:
            for action in ACTIONS:
                yield module, action, (module, action) in self.grants

    def to_dict(self) -> dict:
        return {m.value: {a.value: (m, a) in self.grants for a in ACTIONS} for m in MODULES}

    @classmethod
    def from_dict(cls, data: Mapping[str, Mapping[str, bool]]) -> "PermissionMatrix":
        if not isinstance(data, Mapping):
            raise ValidationError("Permissions must be an object of module -> action -> boolean")

        grants = set()
        for module_key, actions in data.items():
            try:
                module = PermissionModule(module_key)
            except ValueError:
                raise ValidationError(f"Unknown module: {module_key}")
            if not isinstance(actions, Mapping):
                raise ValidationError(f"Permissions for {module_key} must be an object")
            for action_key, granted in actions.items():
                try:
                    action = PermissionAction(action_key)
                except ValueError:
                    raise ValidationError(f"Unknown action: {action_key}")
                if granted:
                    grants.add((module, action))
        return cls(frozenset(grants))

    @classmethod
    def of(cls, *cells: Tuple[str, str]) -> "PermissionMatrix":
        return cls(frozenset((PermissionModule(m), PermissionAction(a)) for m, a in cells))

    @classmethod
    def full(cls) -> "PermissionMatrix":
        return cls(frozenset((m, a) for m in MODULES for a in ACTIONS))


# Granted to a freshly created role until an admin edits its grid
BASELINE_MATRIX = PermissionMatrix.of(
    ("dashboard", "read"),
    ("sales", "read"),
    ("sales", "create"),
    ("inventory", "read"),
    ("reports", "read"),
)


@dataclass(frozen=True)
class Role:
    role_id: str
    display_name: str
    description: Optional[str] = None
    scope: RoleScope = RoleScope.BRANCH
    is_system: bool = False
    created_at: Optional[datetime] = None
    matrix: PermissionMatrix = field(default_factory=PermissionMatrix)

    def to_view(self, *, user_count: int = 0) -> dict:
        return {
            "role_id": self.role_id,
            "name": self.display_name,
            "description": self.description or "",
            "scope": self.scope.value,
            "is_system": self.is_system,
            "created_at": self.created_at,
            "user_count": int(user_count),
            "permissions": self.matrix.to_dict(),
        }
