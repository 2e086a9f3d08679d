from __future__ import annotations

from flask import Flask

from ..common.web import current_role, handles_errors, ok, permission_required
from ..container import Container
from ..core.enums import PermissionModule


def register(app: Flask, container: Container) -> None:
    @app.route("/api/dashboard/overview", methods=["GET"], endpoint="dashboard_overview")
    @handles_errors("Failed to load dashboard")
    @permission_required(PermissionModule.DASHBOARD)
    def dashboard_overview():
        return ok(container.dashboard_service.overview(current_role()))
