from __future__ import annotations

from typing import Dict, Optional, Sequence

from ..core.enums import PermissionAction, PermissionModule, RoleScope
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import PermissionMatrix, Role
from .repository import RoleRepository


class MySQLRoleRepository(RoleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _matrix_from_rows(rows) -> PermissionMatrix:
        grants = set()
        for r in rows:
            if not int(r.get("granted") or 0):
                continue
            try:
                grants.add((PermissionModule(r["module"]), PermissionAction(r["action"])))
            except ValueError:
                # Cells for modules no longer on the grid are ignored
                continue
        return PermissionMatrix(frozenset(grants))

    @staticmethod
    def _to_role(r: dict, matrix: PermissionMatrix) -> Role:
        return Role(
            role_id=str(r["role_id"]),
            display_name=r["display_name"],
            description=r.get("description"),
            scope=RoleScope(r.get("scope") or RoleScope.BRANCH.value),
            is_system=bool(r.get("is_system")),
            created_at=r.get("created_at"),
            matrix=matrix,
        )

    def list_roles(self) -> Sequence[Role]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT role_id, display_name, description, scope, is_system, created_at
                FROM roles
                ORDER BY display_name
                """
            )
            roles = fetchall(cur)

            cur.execute("SELECT role_id, module, action, granted FROM role_permissions")
            by_role: Dict[str, list] = {}
            for row in fetchall(cur):
                by_role.setdefault(str(row["role_id"]), []).append(row)

        return [self._to_role(r, self._matrix_from_rows(by_role.get(str(r["role_id"]), []))) for r in roles]

    def get(self, role_id: str) -> Optional[Role]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT role_id, display_name, description, scope, is_system, created_at
                FROM roles
                WHERE role_id=%s
                """,
                (role_id,),
            )
            r = fetchone(cur)
            if not r:
                return None

            cur.execute(
                "SELECT role_id, module, action, granted FROM role_permissions WHERE role_id=%s",
                (role_id,),
            )
            return self._to_role(r, self._matrix_from_rows(fetchall(cur)))

    def create(self, role: Role) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO roles(role_id, display_name, description, scope, is_system)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (role.role_id, role.display_name, role.description, role.scope.value, 1 if role.is_system else 0),
            )
            self._upsert_cells(cur, role.role_id, role.matrix)

    def update_details(self, role_id: str, *, display_name: str, description: Optional[str], scope: RoleScope) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE roles SET display_name=%s, description=%s, scope=%s WHERE role_id=%s",
                (display_name, description, scope.value, role_id),
            )

    def save_matrix(self, role_id: str, matrix: PermissionMatrix) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            self._upsert_cells(cur, role_id, matrix)

    @staticmethod
    def _upsert_cells(cur, role_id: str, matrix: PermissionMatrix) -> None:
        cur.executemany(
            """
            INSERT INTO role_permissions(role_id, module, action, granted)
            VALUES(%s,%s,%s,%s)
            ON DUPLICATE KEY UPDATE granted=VALUES(granted)
            """,
            [(role_id, m.value, a.value, 1 if granted else 0) for m, a, granted in matrix.cells()],
        )

    def delete(self, role_id: str, *, reassign_to: Optional[str] = None) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            moved = 0
            if reassign_to:
                cur.execute("UPDATE users SET role=%s WHERE role=%s", (reassign_to, role_id))
                moved = int(cur.rowcount)
            cur.execute("DELETE FROM role_permissions WHERE role_id=%s", (role_id,))
            cur.execute("DELETE FROM roles WHERE role_id=%s", (role_id,))
            return moved

    def user_counts(self) -> Dict[str, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT role, COUNT(*) AS total FROM users GROUP BY role")
            return {str(r["role"]): int(r["total"]) for r in fetchall(cur)}

    def members(self, role_id: str) -> Sequence[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT user_id, email, first_name, last_name, branch, status, last_login_at
                FROM users
                WHERE role=%s
                ORDER BY first_name, last_name
                """,
                (role_id,),
            )
            return fetchall(cur)
