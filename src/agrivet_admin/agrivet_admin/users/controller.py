from __future__ import annotations

from flask import Flask, current_app, request, session

from ..common.exporting import CSV_MIMETYPE, to_csv
from ..common.web import (
    arg_date,
    arg_int,
    arg_str,
    current_user_id,
    download,
    fail,
    handles_errors,
    json_body,
    log_activity,
    login_required,
    ok,
    permission_required,
)
from ..container import Container
from ..core.enums import PermissionAction, PermissionModule
from .activity_service import ACTIVITY_EXPORT_COLUMNS
from .service import USER_EXPORT_COLUMNS

SETTINGS = PermissionModule.SETTINGS


def register(app: Flask, container: Container) -> None:
    auth = container.auth_service
    accounts = container.user_account_service
    activity = container.activity_service

    @app.before_request
    def refresh_signed_in_user():
        # Revoked sessions and suspended or deleted accounts sign the browser out
        if "user_id" not in session:
            return
        user = auth.resolve_session(session.get("session_id"), session.get("user_id"))
        if user is None:
            session.clear()
            return
        session["email"] = user.email
        session["name"] = user.full_name or user.email
        session["role"] = user.role
        session["branch"] = user.branch

    @app.route("/api/auth/login", methods=["POST"], endpoint="auth_login")
    @handles_errors("Login failed, please try again")
    def auth_login():
        body = json_body()
        s_user = auth.authenticate(
            str(body.get("email") or ""),
            str(body.get("password") or ""),
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )

        session.clear()
        session.permanent = True
        session["user_id"] = s_user.user_id
        session["email"] = s_user.email
        session["name"] = s_user.name
        session["role"] = s_user.role
        session["branch"] = s_user.branch
        session["session_id"] = s_user.session_id

        current_app.logger.info("User %s signed in", s_user.email)
        return ok(_me(s_user.role))

    @app.route("/api/auth/logout", methods=["POST"], endpoint="auth_logout")
    @handles_errors("Logout failed")
    def auth_logout():
        auth.logout(session.get("session_id"))
        session.clear()
        return ok({"signed_out": True})

    @app.route("/api/auth/me", methods=["GET"], endpoint="auth_me")
    @handles_errors("Failed to load profile")
    @login_required
    def auth_me():
        return ok(_me(session.get("role") or ""))

    def _me(role: str) -> dict:
        return {
            "user_id": session["user_id"],
            "email": session.get("email"),
            "name": session.get("name"),
            "role": role,
            "branch": session.get("branch"),
            "permissions": container.permission_service.permissions_for(role),
        }

    @app.route("/api/users", methods=["GET"], endpoint="users_list")
    @handles_errors("Failed to load user accounts")
    @permission_required(SETTINGS)
    def users_list():
        return ok(_filtered_accounts())

    def _filtered_accounts() -> dict:
        return accounts.list_accounts(
            search=arg_str("search"),
            role=arg_str("role"),
            status=arg_str("status"),
            sort_key=arg_str("sort") or "created_at",
            sort_dir=arg_str("dir") or "desc",
        )

    @app.route("/api/users/export", methods=["GET"], endpoint="users_export")
    @handles_errors("Failed to export user accounts")
    @permission_required(SETTINGS, PermissionAction.EXPORT)
    def users_export():
        rows = accounts.export_rows(_filtered_accounts()["users"])
        log_activity("settings", "export", f"Exported {len(rows)} user account(s)")
        return download(to_csv(rows, columns=USER_EXPORT_COLUMNS), filename="user_accounts.csv", mimetype=CSV_MIMETYPE)

    @app.route("/api/users", methods=["POST"], endpoint="users_create")
    @handles_errors("Failed to create user")
    @permission_required(SETTINGS, PermissionAction.CREATE)
    def users_create():
        body = json_body()
        user = accounts.create_account(
            acting_user_id=current_user_id(),
            email=str(body.get("email") or ""),
            first_name=str(body.get("first_name") or ""),
            last_name=str(body.get("last_name") or ""),
            password=str(body.get("password") or ""),
            role=str(body.get("role") or ""),
            branch=body.get("branch"),
        )
        log_activity("settings", "create", f"Created account {user.email}")
        return ok(user.to_view(), 201)

    @app.route("/api/users/<int:user_id>", methods=["PUT"], endpoint="users_update")
    @handles_errors("Failed to update user")
    @permission_required(SETTINGS, PermissionAction.UPDATE)
    def users_update(user_id: int):
        body = json_body()
        user = accounts.update_account(
            user_id,
            acting_user_id=current_user_id(),
            email=body.get("email"),
            first_name=body.get("first_name"),
            last_name=body.get("last_name"),
            password=body.get("password"),
            role=body.get("role"),
            branch=body.get("branch"),
        )
        log_activity("settings", "update", f"Updated account {user.email}")
        return ok(user.to_view())

    @app.route("/api/users/<int:user_id>/status", methods=["POST"], endpoint="users_status")
    @handles_errors("Failed to change account status")
    @permission_required(SETTINGS, PermissionAction.UPDATE)
    def users_status(user_id: int):
        action = str(json_body().get("action") or "")
        user = accounts.set_status(user_id, action, acting_user_id=current_user_id())
        log_activity("settings", "update", f"{action.capitalize()} account {user.email}")
        return ok(user.to_view())

    @app.route("/api/users/<int:user_id>", methods=["DELETE"], endpoint="users_delete")
    @handles_errors("Failed to delete user")
    @permission_required(SETTINGS, PermissionAction.DELETE)
    def users_delete(user_id: int):
        accounts.delete_account(user_id, acting_user_id=current_user_id())
        log_activity("settings", "delete", f"Deleted account #{user_id}")
        return ok({"user_id": user_id})

    @app.route("/api/users/audit", methods=["GET"], endpoint="users_audit")
    @handles_errors("Failed to load the audit log")
    @permission_required(SETTINGS)
    def users_audit():
        return ok(accounts.audit_log(limit=arg_int("limit", 50)))

    def _filtered_events():
        return activity.list_events(
            search=arg_str("search"),
            role=arg_str("role"),
            module=arg_str("module"),
            action=arg_str("action"),
            branch=arg_str("branch"),
            date_from=arg_date("date_from"),
            date_to=arg_date("date_to"),
        )

    @app.route("/api/users/activity", methods=["GET"], endpoint="users_activity")
    @handles_errors("Failed to load user activity")
    @permission_required(SETTINGS)
    def users_activity():
        events = _filtered_events()
        return ok([e.to_view() for e in events], summary=activity.summary(events))

    @app.route("/api/users/activity/export", methods=["GET"], endpoint="users_activity_export")
    @handles_errors("Failed to export user activity")
    @permission_required(SETTINGS, PermissionAction.EXPORT)
    def users_activity_export():
        rows = activity.export_rows(_filtered_events())
        log_activity("settings", "export", f"Exported {len(rows)} activity event(s)")
        return download(to_csv(rows, columns=ACTIVITY_EXPORT_COLUMNS), filename="user_activity.csv", mimetype=CSV_MIMETYPE)

    @app.route("/api/users/sessions", methods=["GET"], endpoint="users_sessions")
    @handles_errors("Failed to load sessions")
    @permission_required(SETTINGS)
    def users_sessions():
        return ok(activity.list_sessions(current_session_id=session.get("session_id")))

    @app.route("/api/users/sessions/<session_id>", methods=["DELETE"], endpoint="users_session_revoke")
    @handles_errors("Failed to revoke session")
    @permission_required(SETTINGS, PermissionAction.UPDATE)
    def users_session_revoke(session_id: str):
        if session_id == session.get("session_id"):
            return fail("Use sign out to end your current session", 400)
        activity.revoke_session(session_id)
        return ok({"session_id": session_id})

    @app.route("/api/users/sessions/revoke-others", methods=["POST"], endpoint="users_sessions_revoke_others")
    @handles_errors("Failed to revoke sessions")
    @login_required
    def users_sessions_revoke_others():
        revoked = activity.revoke_other_sessions(
            str(session.get("email") or ""), current_session_id=session.get("session_id")
        )
        return ok({"revoked": revoked})

    @app.route("/api/users/active", methods=["GET"], endpoint="users_active")
    @handles_errors("Failed to load active users")
    @permission_required(SETTINGS)
    def users_active():
        return ok(activity.active_users_overview())
