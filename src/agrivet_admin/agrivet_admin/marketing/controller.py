from __future__ import annotations

from flask import Flask, request, send_from_directory

from ..common.web import (
    arg_bool,
    arg_date,
    arg_int,
    arg_str,
    current_user_id,
    fail,
    handles_errors,
    json_body,
    log_activity,
    ok,
    permission_required,
)
from ..container import Container
from ..core.constants import DEFAULT_LIST_LIMIT, DEFAULT_PAGE_SIZE
from ..core.enums import CampaignTemplateType, PermissionAction, PermissionModule
from ..core.exceptions import ValidationError
from .model import CampaignFilters

MARKETING = PermissionModule.MARKETING


def register(app: Flask, container: Container) -> None:
    service = container.campaign_service
    storage = container.image_storage

    def _filters() -> CampaignFilters:
        template_type = arg_str("template_type")
        status = (arg_str("status") or "").lower()
        try:
            kind = CampaignTemplateType(template_type) if template_type else None
        except ValueError:
            raise ValidationError(f"Unknown template type: {template_type!r}")
        return CampaignFilters(
            template_type=kind,
            is_active={"active": True, "inactive": False}.get(status),
            is_published=arg_bool("is_published"),
            created_by=arg_int("created_by"),
            date_from=arg_date("date_from"),
            date_to=arg_date("date_to"),
            search=arg_str("search"),
        )

    @app.route("/api/campaigns", methods=["GET"], endpoint="campaigns_list")
    @handles_errors("Failed to fetch campaigns")
    @permission_required(MARKETING)
    def campaigns_list():
        result = service.list_campaigns(
            _filters(), page=arg_int("page", 1), limit=arg_int("limit", DEFAULT_PAGE_SIZE)
        )
        return ok(result)

    @app.route("/api/campaigns", methods=["POST"], endpoint="campaigns_create")
    @handles_errors("Failed to create campaign")
    @permission_required(MARKETING, PermissionAction.CREATE)
    def campaigns_create():
        campaign = service.create(json_body(), user_id=current_user_id())
        log_activity("marketing", "create", f"Created campaign {campaign.campaign_name}")
        return ok(service.view(campaign), 201)

    @app.route("/api/campaigns/<int:campaign_id>", methods=["GET"], endpoint="campaigns_get")
    @handles_errors("Failed to fetch campaign")
    @permission_required(MARKETING)
    def campaigns_get(campaign_id: int):
        return ok(service.view(service.get(campaign_id)))

    @app.route("/api/campaigns/<int:campaign_id>", methods=["PUT"], endpoint="campaigns_update")
    @handles_errors("Failed to update campaign")
    @permission_required(MARKETING, PermissionAction.UPDATE)
    def campaigns_update(campaign_id: int):
        campaign = service.update(campaign_id, json_body(), user_id=current_user_id())
        log_activity("marketing", "update", f"Updated campaign {campaign.campaign_name}")
        return ok(service.view(campaign))

    @app.route("/api/campaigns/<int:campaign_id>", methods=["DELETE"], endpoint="campaigns_delete")
    @handles_errors("Failed to delete campaign")
    @permission_required(MARKETING, PermissionAction.DELETE)
    def campaigns_delete(campaign_id: int):
        service.delete(campaign_id, user_id=current_user_id())
        log_activity("marketing", "delete", f"Deleted campaign #{campaign_id}")
        return ok(True)

    @app.route("/api/campaigns/<int:campaign_id>/duplicate", methods=["POST"], endpoint="campaigns_duplicate")
    @handles_errors("Failed to duplicate campaign")
    @permission_required(MARKETING, PermissionAction.CREATE)
    def campaigns_duplicate(campaign_id: int):
        copy = service.duplicate(campaign_id, user_id=current_user_id())
        log_activity("marketing", "create", f"Duplicated campaign #{campaign_id}")
        return ok(service.view(copy), 201)

    @app.route("/api/campaigns/<int:campaign_id>/publish", methods=["POST"], endpoint="campaigns_publish")
    @handles_errors("Failed to publish campaign")
    @permission_required(MARKETING, PermissionAction.UPDATE)
    def campaigns_publish(campaign_id: int):
        campaign = service.publish(campaign_id, user_id=current_user_id())
        log_activity("marketing", "update", f"Published campaign {campaign.campaign_name}")
        return ok(service.view(campaign))

    @app.route("/api/campaigns/<int:campaign_id>/unpublish", methods=["POST"], endpoint="campaigns_unpublish")
    @handles_errors("Failed to unpublish campaign")
    @permission_required(MARKETING, PermissionAction.UPDATE)
    def campaigns_unpublish(campaign_id: int):
        campaign = service.unpublish(campaign_id, user_id=current_user_id())
        log_activity("marketing", "update", f"Unpublished campaign {campaign.campaign_name}")
        return ok(service.view(campaign))

    @app.route("/api/campaigns/<int:campaign_id>/toggle", methods=["POST"], endpoint="campaigns_toggle")
    @handles_errors("Failed to toggle campaign status")
    @permission_required(MARKETING, PermissionAction.UPDATE)
    def campaigns_toggle(campaign_id: int):
        body = json_body()
        is_active = body.get("is_active")
        campaign = service.toggle_active(
            campaign_id, user_id=current_user_id(), is_active=None if is_active is None else bool(is_active)
        )
        return ok(service.view(campaign))

    @app.route("/api/campaigns/<int:campaign_id>/analytics", methods=["GET"], endpoint="campaigns_analytics")
    @handles_errors("Failed to fetch analytics")
    @permission_required(MARKETING)
    def campaigns_analytics(campaign_id: int):
        return ok(service.analytics(campaign_id, arg_str("range") or "7d"))

    @app.route("/api/campaigns/<int:campaign_id>/preview", methods=["GET"], endpoint="campaigns_preview")
    @handles_errors("Failed to load preview")
    @permission_required(MARKETING)
    def campaigns_preview(campaign_id: int):
        return ok(service.preview(campaign_id))

    # Storefront pages report views and clicks without a back-office session
    @app.route("/api/campaigns/<int:campaign_id>/events", methods=["POST"], endpoint="campaigns_track")
    @handles_errors("Failed to track event")
    def campaigns_track(campaign_id: int):
        body = json_body()
        service.track_event(
            campaign_id,
            str(body.get("event_type") or ""),
            event_data=body.get("event_data"),
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
            referrer=request.referrer,
        )
        return ok(True, 201)

    @app.route("/api/marketing/dashboard", methods=["GET"], endpoint="marketing_dashboard")
    @handles_errors("Failed to fetch dashboard metrics")
    @permission_required(MARKETING)
    def marketing_dashboard():
        return ok(service.dashboard_metrics())

    @app.route("/api/marketing/audit", methods=["GET"], endpoint="marketing_audit")
    @handles_errors("Failed to load marketing audit log")
    @permission_required(MARKETING)
    def marketing_audit():
        return ok(service.audit_log(arg_int("limit", DEFAULT_LIST_LIMIT)))

    @app.route("/api/campaign-templates", methods=["GET"], endpoint="templates_list")
    @handles_errors("Failed to fetch templates")
    @permission_required(MARKETING)
    def templates_list():
        templates = service.list_templates(include_inactive=bool(arg_bool("include_inactive")))
        return ok([t.to_view() for t in templates])

    @app.route("/api/campaign-templates", methods=["POST"], endpoint="templates_create")
    @handles_errors("Failed to create template")
    @permission_required(MARKETING, PermissionAction.CREATE)
    def templates_create():
        template = service.create_template(json_body(), user_id=current_user_id())
        log_activity("marketing", "create", f"Created template {template.template_name}")
        return ok(template.to_view(), 201)

    @app.route("/api/campaign-templates/<int:template_id>", methods=["PUT"], endpoint="templates_update")
    @handles_errors("Failed to update template")
    @permission_required(MARKETING, PermissionAction.UPDATE)
    def templates_update(template_id: int):
        template = service.update_template(template_id, json_body(), user_id=current_user_id())
        return ok(template.to_view())

    @app.route("/api/campaign-templates/<int:template_id>", methods=["DELETE"], endpoint="templates_delete")
    @handles_errors("Failed to delete template")
    @permission_required(MARKETING, PermissionAction.DELETE)
    def templates_delete(template_id: int):
        service.delete_template(template_id, user_id=current_user_id())
        log_activity("marketing", "delete", f"Deleted template #{template_id}")
        return ok(True)

    @app.route("/api/uploads/images", methods=["POST"], endpoint="uploads_image")
    @handles_errors("Failed to upload image")
    @permission_required(MARKETING, PermissionAction.CREATE)
    def uploads_image():
        file = request.files.get("file")
        if file is None:
            return fail("No file uploaded", 400, errors={"file": "Choose an image to upload"})
        stored = storage.upload(file.filename, file.mimetype, file.read())
        return ok(stored, 201)

    @app.route("/api/uploads/images", methods=["DELETE"], endpoint="uploads_image_delete")
    @handles_errors("Failed to delete image")
    @permission_required(MARKETING, PermissionAction.DELETE)
    def uploads_image_delete():
        path = str(json_body().get("path") or arg_str("path") or "")
        storage.delete(path)
        return ok(True)

    @app.route("/uploads/<path:filename>", methods=["GET"], endpoint="uploads_serve")
    def uploads_serve(filename: str):
        return send_from_directory(storage.root, filename)
