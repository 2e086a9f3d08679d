from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import StaffMember


class StaffRepository(Protocol):
    def get_by_id(self, staff_id: int) -> Optional[StaffMember]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[StaffMember]:
        raise NotImplementedError

    def get_by_code(self, employee_code: str) -> Optional[StaffMember]:
        raise NotImplementedError

    def list_staff(self, *, department: Optional[str] = None, include_inactive: bool = False) -> Sequence[StaffMember]:
        raise NotImplementedError

    def create(self, fields: dict) -> int:
        raise NotImplementedError

    def update(self, staff_id: int, *, changes: dict) -> None:
        raise NotImplementedError

    def set_active(self, staff_id: int, *, is_active: bool) -> bool:
        raise NotImplementedError

    def next_employee_number(self) -> int:
        """Highest numeric suffix of existing ``EMP-`` codes plus one."""

        raise NotImplementedError
