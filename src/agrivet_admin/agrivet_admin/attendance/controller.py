from __future__ import annotations

from datetime import timedelta

from flask import Flask

from ..common.datetime_utils import add_months, now_local
from ..common.exporting import CSV_MIMETYPE, XLSX_MIMETYPE, to_csv, to_xlsx
from ..common.web import (
    arg_date,
    arg_int,
    arg_str,
    download,
    handles_errors,
    json_body,
    log_activity,
    ok,
    permission_required,
)
from ..container import Container
from ..core.enums import PermissionAction, PermissionModule
from ..core.exceptions import ValidationError
from .service import BOARD_EXPORT_COLUMNS, TIMESHEET_EXPORT_COLUMNS

STAFF = PermissionModule.STAFF


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    def _staff_id_from_body() -> int:
        try:
            return int(json_body().get("staff_id"))
        except (TypeError, ValueError):
            raise ValidationError("staff_id is required", {"staff_id": "Select a staff member"})

    def _board():
        day = arg_date("date", now_local().date())
        return day, service.daily_board(day, department=arg_str("department"), staff_id=arg_int("staff_id"))

    @app.route("/api/attendance/board", methods=["GET"], endpoint="attendance_board")
    @handles_errors("Failed to load attendance")
    @permission_required(STAFF)
    def attendance_board():
        day, board = _board()
        return ok(board["rows"], summary=board["summary"], date=day)

    @app.route("/api/attendance/board/export", methods=["GET"], endpoint="attendance_board_export")
    @handles_errors("Failed to export attendance")
    @permission_required(STAFF, PermissionAction.EXPORT)
    def attendance_board_export():
        day, board = _board()
        buf = to_csv(service.board_export_rows(board["rows"]), columns=BOARD_EXPORT_COLUMNS)
        log_activity("staff", "export", f"Exported attendance for {day.isoformat()}")
        return download(buf, filename=f"attendance-{day.isoformat()}.csv", mimetype=CSV_MIMETYPE)

    @app.route("/api/attendance/clock-in", methods=["POST"], endpoint="attendance_clock_in")
    @handles_errors("Failed to clock in")
    @permission_required(STAFF, PermissionAction.UPDATE)
    def attendance_clock_in():
        record = service.clock_in(_staff_id_from_body(), location=json_body().get("location"))
        return ok(record, 201)

    @app.route("/api/attendance/clock-out", methods=["POST"], endpoint="attendance_clock_out")
    @handles_errors("Failed to clock out")
    @permission_required(STAFF, PermissionAction.UPDATE)
    def attendance_clock_out():
        return ok(service.clock_out(_staff_id_from_body()))

    def _timesheet() -> dict:
        today = now_local().date()
        start = arg_date("start", today.replace(day=1))
        end = arg_date("end", add_months(start, 1) - timedelta(days=1))
        return service.timesheet(start, end, department=arg_str("department"), staff_id=arg_int("staff_id"))

    @app.route("/api/attendance/timesheet", methods=["GET"], endpoint="attendance_timesheet")
    @handles_errors("Failed to load timesheet")
    @permission_required(STAFF)
    def attendance_timesheet():
        return ok(_timesheet())

    @app.route("/api/attendance/timesheet/export", methods=["GET"], endpoint="attendance_timesheet_export")
    @handles_errors("Failed to export timesheet")
    @permission_required(STAFF, PermissionAction.EXPORT)
    def attendance_timesheet_export():
        sheet = _timesheet()
        rows = service.timesheet_export_rows(sheet["rows"])
        stem = f"timesheet_{sheet['start']:%Y%m%d}_{sheet['end']:%Y%m%d}"
        log_activity("staff", "export", f"Exported timesheet {sheet['start']} to {sheet['end']}")

        if (arg_str("format") or "xlsx").lower() == "csv":
            return download(to_csv(rows, columns=TIMESHEET_EXPORT_COLUMNS), filename=f"{stem}.csv", mimetype=CSV_MIMETYPE)
        buf = to_xlsx(rows, sheet_name="Timesheet", columns=TIMESHEET_EXPORT_COLUMNS)
        return download(buf, filename=f"{stem}.xlsx", mimetype=XLSX_MIMETYPE)
