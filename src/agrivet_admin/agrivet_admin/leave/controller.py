from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import now_local, parse_optional_date
from ..common.exporting import CSV_MIMETYPE, to_csv
from ..common.web import (
    arg_str,
    current_user_id,
    download,
    handles_errors,
    json_body,
    log_activity,
    ok,
    permission_required,
)
from ..container import Container
from ..core.enums import PermissionAction, PermissionModule
from .service import EXPORT_COLUMNS

STAFF = PermissionModule.STAFF


def register(app: Flask, container: Container) -> None:
    service = container.leave_service

    def _month() -> str:
        return arg_str("month") or now_local().strftime("%Y-%m")

    @app.route("/api/leave", methods=["GET"], endpoint="leave_list")
    @handles_errors("Failed to load leave requests")
    @permission_required(STAFF)
    def leave_list():
        month = _month()
        data = service.list_for_month(month, status_tab=arg_str("status") or "all")
        return ok(data["rows"], stats=data["stats"], month=month)

    @app.route("/api/leave", methods=["POST"], endpoint="leave_create")
    @handles_errors("Failed to create leave request")
    @permission_required(STAFF, PermissionAction.CREATE)
    def leave_create():
        body = json_body()
        staff_id = body.get("staff_id")
        req = service.create_request(
            staff_id=int(staff_id) if str(staff_id or "").isdigit() else None,
            leave_type=str(body.get("leave_type") or ""),
            start_date=parse_optional_date(body.get("start_date")),
            end_date=parse_optional_date(body.get("end_date")),
            reason=str(body.get("reason") or ""),
            emergency_contact=body.get("emergency_contact"),
        )
        return ok(req, 201)

    @app.route("/api/leave/<int:request_id>/approve", methods=["POST"], endpoint="leave_approve")
    @handles_errors("Failed to approve request")
    @permission_required(STAFF, PermissionAction.UPDATE)
    def leave_approve(request_id: int):
        req = service.approve(request_id, admin_id=current_user_id(), note=str(json_body().get("note") or ""))
        log_activity("staff", "update", f"Approved leave request #{request_id}")
        return ok(req)

    @app.route("/api/leave/<int:request_id>/reject", methods=["POST"], endpoint="leave_reject")
    @handles_errors("Failed to reject request")
    @permission_required(STAFF, PermissionAction.UPDATE)
    def leave_reject(request_id: int):
        req = service.reject(request_id, admin_id=current_user_id(), note=str(json_body().get("note") or ""))
        log_activity("staff", "update", f"Rejected leave request #{request_id}")
        return ok(req)

    @app.route("/api/leave/approve-all", methods=["POST"], endpoint="leave_approve_all")
    @handles_errors("Failed to approve all")
    @permission_required(STAFF, PermissionAction.UPDATE)
    def leave_approve_all():
        month = str(json_body().get("month") or _month())
        approved = service.approve_all_pending(month, admin_id=current_user_id())
        log_activity("staff", "update", f"Approved {approved} pending leave request(s) for {month}")
        return ok({"approved": approved, "month": month})

    @app.route("/api/leave/export", methods=["GET"], endpoint="leave_export")
    @handles_errors("Failed to export leave requests")
    @permission_required(STAFF, PermissionAction.EXPORT)
    def leave_export():
        month = _month()
        data = service.list_for_month(month, status_tab=arg_str("status") or "all")
        log_activity("staff", "export", f"Exported leave requests for {month}")
        buf = to_csv(service.export_rows(data["rows"]), columns=EXPORT_COLUMNS)
        return download(buf, filename=f"leave_requests_{month}.csv", mimetype=CSV_MIMETYPE)
