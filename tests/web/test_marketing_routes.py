from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from src.agrivet_admin.agrivet_admin.core.exceptions import NotFoundError, ValidationError


def test_validation_errors_come_back_per_field(client, login, container):
    container.campaign_service.create.side_effect = ValidationError(
        "Please fix the highlighted fields", {"title": "Title is required"}
    )
    login("marketer@agrivet.test")

    resp = client.post("/api/campaigns", json={"campaign_name": "Promo"})

    assert resp.status_code == 400
    body = resp.get_json()
    assert body["message"] == "Please fix the highlighted fields"
    assert body["errors"] == {"title": "Title is required"}


def test_create_returns_201_with_view_and_logs_activity(client, login, container):
    container.campaign_service.view.return_value = {
        "campaign_id": 7,
        "campaign_name": "Rainy Promo",
        "created_at": datetime(2026, 3, 12, 9, 0),
        "budget": Decimal("1500.50"),
    }
    login("marketer@agrivet.test")

    resp = client.post("/api/campaigns", json={"campaign_name": "Rainy Promo", "title": "Sale"})

    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["created_at"] == "2026-03-12T09:00:00"
    assert data["budget"] == "1500.50"
    _, kwargs = container.campaign_service.create.call_args
    assert kwargs == {"user_id": 2}
    assert container.activity_events[-1]["module"] == "marketing"


def test_unknown_campaign_is_404(client, login, container):
    container.campaign_service.get.side_effect = NotFoundError("Campaign not found")
    login("marketer@agrivet.test")

    resp = client.get("/api/campaigns/99")

    assert resp.status_code == 404
    assert resp.get_json()["message"] == "Campaign not found"


def test_unexpected_failure_is_reported_without_details(client, login, container):
    container.campaign_service.list_campaigns.side_effect = RuntimeError("db went away")
    login("marketer@agrivet.test")

    resp = client.get("/api/campaigns")

    assert resp.status_code == 500
    assert resp.get_json() == {"success": False, "message": "Failed to fetch campaigns"}


def test_unknown_template_type_filter_is_rejected(client, login):
    login("marketer@agrivet.test")

    assert client.get("/api/campaigns?template_type=billboard").status_code == 400


def test_storefront_events_need_no_session(client, container):
    resp = client.post(
        "/api/campaigns/3/events",
        json={"event_type": "click"},
        headers={"User-Agent": "Mozilla/5.0 (iPhone)"},
    )

    assert resp.status_code == 201
    args, kwargs = container.campaign_service.track_event.call_args
    assert args == (3, "click")
    assert kwargs["user_agent"] == "Mozilla/5.0 (iPhone)"


def test_upload_without_file_is_a_field_error(client, login):
    login("marketer@agrivet.test")

    resp = client.post("/api/uploads/images", data={})

    assert resp.status_code == 400
    assert "file" in resp.get_json()["errors"]


def test_dashboard_overview_uses_signed_in_role(client, login, container):
    container.dashboard_service.overview.return_value = {"date": "2026-03-12"}
    login("marketer@agrivet.test")

    assert client.get("/api/dashboard/overview").status_code == 200
    container.dashboard_service.overview.assert_called_once_with("marketer")
