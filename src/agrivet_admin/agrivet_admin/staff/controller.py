from __future__ import annotations

from flask import Flask

from ..common.web import arg_bool, arg_str, handles_errors, json_body, log_activity, ok, permission_required
from ..container import Container
from ..core.enums import PermissionAction, PermissionModule

STAFF = PermissionModule.STAFF


def register(app: Flask, container: Container) -> None:
    service = container.staff_service

    @app.route("/api/staff", methods=["GET"], endpoint="staff_list")
    @handles_errors("Failed to load staff")
    @permission_required(STAFF)
    def staff_list():
        members = service.list_staff(
            department=arg_str("department"),
            search=arg_str("search"),
            include_inactive=bool(arg_bool("include_inactive")),
        )
        return ok([m.to_view() for m in members])

    @app.route("/api/staff", methods=["POST"], endpoint="staff_add")
    @handles_errors("Failed to create staff member. Please try again.")
    @permission_required(STAFF, PermissionAction.CREATE)
    def staff_add():
        member = service.add_staff(json_body())
        log_activity("staff", "create", f"Added staff {member.employee_code} {member.full_name}")
        return ok(member.to_view(), 201)

    @app.route("/api/staff/departments", methods=["GET"], endpoint="staff_departments")
    @handles_errors("Failed to load departments")
    @permission_required(STAFF)
    def staff_departments():
        return ok(service.departments(), headcount=service.headcount_by_department())

    @app.route("/api/staff/<int:staff_id>", methods=["GET"], endpoint="staff_get")
    @handles_errors("Failed to load staff member")
    @permission_required(STAFF)
    def staff_get(staff_id: int):
        return ok(service.get_staff(staff_id).to_view())

    @app.route("/api/staff/<int:staff_id>", methods=["PUT"], endpoint="staff_update")
    @handles_errors("Failed to update staff member")
    @permission_required(STAFF, PermissionAction.UPDATE)
    def staff_update(staff_id: int):
        member = service.update_staff(staff_id, json_body())
        log_activity("staff", "update", f"Updated staff {member.employee_code}")
        return ok(member.to_view())

    @app.route("/api/staff/<int:staff_id>/active", methods=["POST"], endpoint="staff_set_active")
    @handles_errors("Failed to update staff status")
    @permission_required(STAFF, PermissionAction.UPDATE)
    def staff_set_active(staff_id: int):
        member = service.set_active(staff_id, is_active=bool(json_body().get("is_active", True)))
        return ok(member.to_view())
