from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

from ..common.datetime_utils import now_local, parse_iso_date
from ..common.validators import is_blank, is_email
from ..core.exceptions import NotFoundError, ValidationError
from .model import StaffMember
from .repository import StaffRepository

logger = logging.getLogger(__name__)

_PHONE = re.compile(r"^\+?[1-9]\d{0,15}$")
_PHONE_NOISE = re.compile(r"[\s\-()]")

_TEXT_FIELDS = ("first_name", "last_name", "email", "phone", "department", "position", "role", "branch", "employee_code")


def validate_staff_form(data: Mapping, *, partial: bool = False) -> dict:
    """Field -> message for every problem in a staff form.

    ``partial`` only checks the keys present (edit forms).
    """

    errors: dict[str, str] = {}

    def present(key: str) -> bool:
        return not partial or key in data

    for key, label in (("first_name", "First name"), ("last_name", "Last name"), ("position", "Position")):
        if present(key) and is_blank(data.get(key)):
            errors[key] = f"{label} is required"

    if present("email"):
        email = str(data.get("email") or "").strip()
        if not email:
            errors["email"] = "Email is required"
        elif not is_email(email):
            errors["email"] = "Please enter a valid email address"

    phone = str(data.get("phone") or "")
    if phone and not _PHONE.match(_PHONE_NOISE.sub("", phone)):
        errors["phone"] = "Please enter a valid phone number"

    salary = data.get("salary")
    if salary not in (None, ""):
        try:
            if Decimal(str(salary)) < 0:
                errors["salary"] = "Salary cannot be negative"
        except InvalidOperation:
            errors["salary"] = "Salary must be a number"

    if data.get("hire_date"):
        try:
            parse_iso_date(str(data["hire_date"]))
        except ValidationError:
            errors["hire_date"] = "Hire date must be YYYY-MM-DD"

    return errors


class StaffService:
    """Use case: staff directory (add, edit, deactivate, list)."""

    def __init__(self, staff: StaffRepository):
        self._staff = staff

    def get_staff(self, staff_id: int) -> StaffMember:
        member = self._staff.get_by_id(int(staff_id))
        if not member:
            raise NotFoundError("Staff member not found")
        return member

    def list_staff(
        self,
        *,
        department: Optional[str] = None,
        search: Optional[str] = None,
        include_inactive: bool = False,
    ) -> list[StaffMember]:
        members = list(self._staff.list_staff(department=department, include_inactive=include_inactive))
        if search:
            needle = search.strip().lower()
            members = [
                m
                for m in members
                if needle in m.full_name.lower()
                or needle in m.email.lower()
                or needle in m.employee_code.lower()
                or needle in (m.position or "").lower()
            ]
        return members

    def _clean(self, data: Mapping) -> dict:
        fields: dict = {}
        for key in _TEXT_FIELDS:
            if key in data:
                fields[key] = str(data.get(key) or "").strip() or None
        if fields.get("email"):
            fields["email"] = fields["email"].lower()
        if "hire_date" in data:
            fields["hire_date"] = parse_iso_date(str(data["hire_date"])) if data.get("hire_date") else None
        if "salary" in data:
            fields["salary"] = Decimal(str(data["salary"])) if data.get("salary") not in (None, "") else None
        if "is_active" in data:
            fields["is_active"] = bool(data["is_active"])
        if "user_id" in data:
            fields["user_id"] = int(data["user_id"]) if data.get("user_id") else None
        return fields

    def _check_unique(self, fields: dict, *, staff_id: Optional[int] = None) -> None:
        errors = {}
        if fields.get("email"):
            other = self._staff.get_by_email(fields["email"])
            if other and other.staff_id != staff_id:
                errors["email"] = "Email is already used by another staff member"
        if fields.get("employee_code"):
            other = self._staff.get_by_code(fields["employee_code"])
            if other and other.staff_id != staff_id:
                errors["employee_code"] = "Employee ID is already in use"
        if errors:
            raise ValidationError("Please fix the highlighted fields", errors)

    def add_staff(self, data: Mapping) -> StaffMember:
        errors = validate_staff_form(data)
        if errors:
            raise ValidationError("Please fix the highlighted fields", errors)

        fields = self._clean(data)
        self._check_unique(fields)

        if not fields.get("employee_code"):
            fields["employee_code"] = f"EMP-{self._staff.next_employee_number():04d}"
        fields["role"] = fields.get("role") or "staff"
        fields["hire_date"] = fields.get("hire_date") or now_local().date()
        fields.setdefault("is_active", True)

        staff_id = self._staff.create(fields)
        logger.info("Staff member %s added (%s)", fields["employee_code"], fields["email"])
        return self.get_staff(staff_id)

    def update_staff(self, staff_id: int, data: Mapping) -> StaffMember:
        member = self.get_staff(staff_id)
        errors = validate_staff_form(data, partial=True)
        if errors:
            raise ValidationError("Please fix the highlighted fields", errors)

        changes = self._clean(data)
        if "employee_code" in changes and not changes["employee_code"]:
            del changes["employee_code"]
        self._check_unique(changes, staff_id=member.staff_id)

        self._staff.update(member.staff_id, changes=changes)
        return self.get_staff(member.staff_id)

    def set_active(self, staff_id: int, *, is_active: bool) -> StaffMember:
        member = self.get_staff(staff_id)
        self._staff.set_active(member.staff_id, is_active=bool(is_active))
        return self.get_staff(member.staff_id)

    def departments(self) -> list[str]:
        return sorted({m.department for m in self._staff.list_staff(include_inactive=True) if m.department})

    def headcount_by_department(self) -> list[dict]:
        counts: dict[str, int] = {}
        for m in self._staff.list_staff():
            key = m.department or "Unassigned"
            counts[key] = counts.get(key, 0) + 1
        return [{"department": d, "count": c} for d, c in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))]
