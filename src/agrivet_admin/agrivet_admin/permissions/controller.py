from __future__ import annotations

from flask import Flask

from ..common.web import arg_str, handles_errors, json_body, ok, permission_required
from ..container import Container
from ..core.enums import PermissionAction, PermissionModule

SETTINGS = PermissionModule.SETTINGS


def register(app: Flask, container: Container) -> None:
    service = container.permission_service

    @app.route("/api/roles", methods=["GET"], endpoint="roles_list")
    @handles_errors("Failed to load roles")
    @permission_required(SETTINGS)
    def roles_list():
        roles = service.list_roles(
            search=arg_str("search"),
            scope=arg_str("scope"),
            sort_key=arg_str("sort") or "users",
            sort_dir=arg_str("dir") or "desc",
        )
        return ok(roles)

    @app.route("/api/roles", methods=["POST"], endpoint="roles_create")
    @handles_errors("Failed to create role")
    @permission_required(SETTINGS, PermissionAction.CREATE)
    def roles_create():
        body = json_body()
        role = service.create_role(
            name=body.get("name", ""),
            description=body.get("description"),
            scope=body.get("scope"),
            permissions=body.get("permissions"),
        )
        return ok(role.to_view(), 201)

    @app.route("/api/roles/<role_id>", methods=["GET"], endpoint="roles_get")
    @handles_errors("Failed to load role")
    @permission_required(SETTINGS)
    def roles_get(role_id: str):
        return ok(service.get_role_view(role_id))

    @app.route("/api/roles/<role_id>", methods=["PUT"], endpoint="roles_update")
    @handles_errors("Failed to update role")
    @permission_required(SETTINGS, PermissionAction.UPDATE)
    def roles_update(role_id: str):
        body = json_body()
        role = service.update_role(
            role_id,
            display_name=body.get("name"),
            description=body.get("description"),
            scope=body.get("scope"),
        )
        return ok(role.to_view())

    @app.route("/api/roles/<role_id>", methods=["DELETE"], endpoint="roles_delete")
    @handles_errors("Failed to delete role")
    @permission_required(SETTINGS, PermissionAction.DELETE)
    def roles_delete(role_id: str):
        moved = service.delete_role(role_id, reassign_to=json_body().get("reassign_to") or arg_str("reassign_to"))
        return ok({"role_id": role_id, "reassigned_users": moved})

    @app.route("/api/roles/<role_id>/toggle", methods=["POST"], endpoint="roles_toggle")
    @handles_errors("Failed to update permission")
    @permission_required(SETTINGS, PermissionAction.UPDATE)
    def roles_toggle(role_id: str):
        body = json_body()
        role = service.toggle_permission(role_id, str(body.get("module", "")), str(body.get("action", "")))
        return ok(role.to_view())

    @app.route("/api/roles/<role_id>/matrix", methods=["PUT"], endpoint="roles_matrix")
    @handles_errors("Failed to save permissions")
    @permission_required(SETTINGS, PermissionAction.UPDATE)
    def roles_matrix(role_id: str):
        body = json_body()
        role = service.set_matrix(role_id, body.get("permissions", body))
        return ok(role.to_view())

    @app.route("/api/roles/<role_id>/members", methods=["GET"], endpoint="roles_members")
    @handles_errors("Failed to load role members")
    @permission_required(SETTINGS)
    def roles_members(role_id: str):
        return ok(service.members(role_id))
