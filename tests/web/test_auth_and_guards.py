from __future__ import annotations

from src.agrivet_admin.agrivet_admin.core.enums import AccountStatus


def test_login_rejects_bad_password_with_generic_message(client, container):
    resp = client.post("/api/auth/login", json={"email": "cashier@agrivet.test", "password": "nope"})

    assert resp.status_code == 401
    body = resp.get_json()
    assert body["success"] is False
    assert body["message"]
    assert container.activity_events[-1]["action"] == "login_failed"


def test_suspended_account_cannot_sign_in(login):
    assert login("banned@agrivet.test").status_code == 401


def test_login_then_me_returns_role_and_grid(client, login):
    assert login("cashier@agrivet.test").status_code == 200

    me = client.get("/api/auth/me").get_json()["data"]
    assert me["email"] == "cashier@agrivet.test"
    assert me["role"] == "cashier"
    assert me["permissions"]["sales"]["read"] is True
    assert me["permissions"]["marketing"]["read"] is False


def test_logout_ends_the_session(client, login):
    login("cashier@agrivet.test")

    assert client.post("/api/auth/logout").status_code == 200
    assert client.get("/api/auth/me").status_code == 401


def test_guarded_routes_require_sign_in(client):
    resp = client.get("/api/campaigns")

    assert resp.status_code == 401
    assert resp.get_json() == {"success": False, "message": "Please sign in to continue"}


def test_missing_matrix_cell_is_forbidden(client, login, container):
    login("cashier@agrivet.test")

    assert client.get("/api/campaigns").status_code == 403
    assert client.get("/api/sales/records/export").status_code == 403
    container.campaign_service.list_campaigns.assert_not_called()


def test_granted_cell_reaches_the_service(client, login, container):
    container.sales_records_service.search.return_value = {
        "rows": [],
        "pagination": {"page": 1, "per_page": 10, "total": 0, "total_pages": 0},
        "totals": {"records": 0},
    }
    login("cashier@agrivet.test")

    body = client.get("/api/sales/records?page=2&per_page=25").get_json()

    assert body["success"] is True
    assert body["pagination"]["total"] == 0
    _, kwargs = container.sales_records_service.search.call_args
    assert kwargs == {"page": 2, "per_page": 25}


def test_suspended_account_is_signed_out_on_next_request(client, login, container):
    login("marketer@agrivet.test")
    assert client.get("/api/auth/me").status_code == 200

    container.accounts.change(2, status=AccountStatus.SUSPENDED)

    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/campaign-templates").status_code == 401


def test_deleted_account_is_signed_out_on_next_request(client, login, container):
    login("marketer@agrivet.test")

    del container.accounts.users[2]

    assert client.get("/api/auth/me").status_code == 401


def test_role_change_applies_to_signed_in_user(client, login, container):
    container.campaign_service.audit_log.return_value = []
    login("marketer@agrivet.test")
    assert client.get("/api/marketing/audit").status_code == 200

    container.accounts.change(2, role="cashier")

    assert client.get("/api/auth/me").get_json()["data"]["role"] == "cashier"
    assert client.get("/api/marketing/audit").status_code == 403


def test_guard_failure_keeps_json_envelope(client, login, container, monkeypatch):
    login("cashier@agrivet.test")

    def broken(*args, **kwargs):
        raise RuntimeError("database went away")

    monkeypatch.setattr(container.permission_service, "has_permission", broken)
    resp = client.get("/api/sales/records")

    assert resp.status_code == 500
    assert resp.get_json() == {"success": False, "message": "Failed to load sales records"}


def test_empty_user_export_still_has_header(client, login, container):
    container.user_account_service.list_accounts.return_value = {"users": [], "counts": {"total": 0}}
    container.user_account_service.export_rows.return_value = []
    login("cashier@agrivet.test")
    container.accounts.change(1, role="super-admin")

    resp = client.get("/api/users/export")

    assert resp.status_code == 200
    assert resp.data.decode("utf-8-sig").strip() == '"Name","Email","Role","Status","Branch","Created","Last Login"'
