from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from ..common.formatting import full_name


@dataclass(frozen=True)
class StaffMember:
    staff_id: int
    employee_code: str
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    role: str = "staff"
    branch: Optional[str] = None
    hire_date: Optional[date] = None
    salary: Optional[Decimal] = None
    is_active: bool = True
    user_id: Optional[int] = None

    @property
    def full_name(self) -> str:
        return full_name(self.first_name, self.last_name)

    def to_view(self) -> dict:
        return {
            "staff_id": self.staff_id,
            "employee_code": self.employee_code,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "department": self.department,
            "position": self.position,
            "role": self.role,
            "branch": self.branch,
            "hire_date": self.hire_date,
            "salary": self.salary,
            "is_active": self.is_active,
            "user_id": self.user_id,
        }
