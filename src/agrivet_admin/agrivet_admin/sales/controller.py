from __future__ import annotations

from datetime import timedelta

from flask import Flask

from ..common.datetime_utils import now_local
from ..common.exporting import CSV_MIMETYPE, XLSX_MIMETYPE, to_csv, to_xlsx
from ..common.web import (
    arg_date,
    arg_int,
    arg_str,
    download,
    handles_errors,
    log_activity,
    ok,
    permission_required,
)
from ..container import Container
from ..core.constants import DEFAULT_PAGE_SIZE
from ..core.enums import PermissionAction, PermissionModule
from .model import RecordFilters
from .period import parse_period
from .report_service import PRODUCT_EXPORT_COLUMNS, RECORD_EXPORT_COLUMNS

SALES = PermissionModule.SALES
REPORTS = PermissionModule.REPORTS


def register(app: Flask, container: Container) -> None:
    def _range(default_days: int = 30):
        today = now_local().date()
        end = arg_date("end", today)
        start = arg_date("start", end - timedelta(days=default_days - 1))
        return start, end

    def _record_filters() -> RecordFilters:
        return RecordFilters(
            date_from=arg_date("date_from"),
            date_to=arg_date("date_to"),
            branch_id=arg_int("branch_id"),
            cashier_id=arg_int("cashier_id"),
            payment_method=arg_str("payment_method"),
            payment_status=arg_str("payment_status"),
            search=arg_str("search"),
        )

    @app.route("/api/sales/dashboard", methods=["GET"], endpoint="sales_dashboard")
    @handles_errors("Failed to load sales dashboard")
    @permission_required(SALES)
    def sales_dashboard():
        period = parse_period(arg_str("period"))
        return ok(container.sales_dashboard_service.dashboard(period))

    @app.route("/api/sales/daily", methods=["GET"], endpoint="sales_daily")
    @handles_errors("Failed to load daily sales summary")
    @permission_required(SALES)
    def sales_daily():
        return ok(container.daily_sales_service.summary(arg_date("date")))

    def _product_report() -> dict:
        start, end = _range()
        return container.product_sales_service.report(
            start, end, category=arg_str("category"), search=arg_str("search")
        )

    @app.route("/api/sales/products", methods=["GET"], endpoint="sales_products")
    @handles_errors("Failed to load product sales")
    @permission_required(REPORTS)
    def sales_products():
        report = _product_report()
        return ok(report["rows"], totals=report["totals"], start=report["start"], end=report["end"])

    @app.route("/api/sales/products/export", methods=["GET"], endpoint="sales_products_export")
    @handles_errors("Failed to export product sales")
    @permission_required(REPORTS, PermissionAction.EXPORT)
    def sales_products_export():
        report = _product_report()
        rows = container.product_sales_service.export_rows(report["rows"])
        log_activity("reports", "export", f"Exported product sales {report['start']} to {report['end']}")
        buf = to_xlsx(rows, sheet_name="Product Sales", columns=PRODUCT_EXPORT_COLUMNS)
        stem = f"product_sales_{report['start']:%Y%m%d}_{report['end']:%Y%m%d}"
        return download(buf, filename=f"{stem}.xlsx", mimetype=XLSX_MIMETYPE)

    @app.route("/api/sales/value", methods=["GET"], endpoint="sales_value")
    @handles_errors("Failed to load sales value")
    @permission_required(REPORTS)
    def sales_value():
        start, end = _range()
        return ok(container.sales_value_service.breakdown(start, end))

    @app.route("/api/sales/records", methods=["GET"], endpoint="sales_records")
    @handles_errors("Failed to load sales records")
    @permission_required(SALES)
    def sales_records():
        result = container.sales_records_service.search(
            _record_filters(),
            page=arg_int("page", 1),
            per_page=arg_int("per_page", DEFAULT_PAGE_SIZE),
        )
        return ok(result["rows"], pagination=result["pagination"], totals=result["totals"])

    @app.route("/api/sales/records/export", methods=["GET"], endpoint="sales_records_export")
    @handles_errors("Failed to export sales records")
    @permission_required(SALES, PermissionAction.EXPORT)
    def sales_records_export():
        rows = container.sales_records_service.export_rows(_record_filters())
        stem = f"sales_records_{now_local():%Y%m%d}"
        log_activity("sales", "export", f"Exported {len(rows)} sales record(s)")

        if (arg_str("format") or "csv").lower() == "xlsx":
            buf = to_xlsx(rows, sheet_name="Sales Records", columns=RECORD_EXPORT_COLUMNS)
            return download(buf, filename=f"{stem}.xlsx", mimetype=XLSX_MIMETYPE)
        return download(to_csv(rows, columns=RECORD_EXPORT_COLUMNS), filename=f"{stem}.csv", mimetype=CSV_MIMETYPE)
