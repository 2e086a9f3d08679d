from __future__ import annotations

from typing import Dict, Optional, Protocol, Sequence

from ..core.enums import RoleScope
from .model import PermissionMatrix, Role


class RoleRepository(Protocol):
    def list_roles(self) -> Sequence[Role]:
        raise NotImplementedError

    def get(self, role_id: str) -> Optional[Role]:
        raise NotImplementedError

    def create(self, role: Role) -> None:
        """Insert the role and every cell of its matrix."""

        raise NotImplementedError

    def update_details(self, role_id: str, *, display_name: str, description: Optional[str], scope: RoleScope) -> None:
        raise NotImplementedError

    def save_matrix(self, role_id: str, matrix: PermissionMatrix) -> None:
        """Upsert one row per (module, action) cell."""

        raise NotImplementedError

    def delete(self, role_id: str, *, reassign_to: Optional[str] = None) -> int:
        """Drop the role and its grid, moving its members to ``reassign_to`` in the same transaction.

        Returns how many users moved.
        """

        raise NotImplementedError

    def user_counts(self) -> Dict[str, int]:
        raise NotImplementedError

    def members(self, role_id: str) -> Sequence[dict]:
        raise NotImplementedError
