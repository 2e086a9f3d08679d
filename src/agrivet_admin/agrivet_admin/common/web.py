"""Shared Flask helpers: JSON envelopes, session guards and query parsing."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from functools import wraps
from typing import Any, Optional

from flask import current_app, jsonify, request, send_file, session
from flask.json.provider import DefaultJSONProvider

from ..core.enums import PermissionAction, PermissionModule
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from .datetime_utils import parse_iso_date


EXTENSION_KEY = "agrivet_admin"


class AdminJSONProvider(DefaultJSONProvider):
    """ISO dates and exact decimals instead of Flask's HTTP-date default."""

    @staticmethod
    def default(o: Any) -> Any:
        if isinstance(o, datetime):
            return o.isoformat(timespec="seconds")
        if isinstance(o, date):
            return o.isoformat()
        if isinstance(o, Decimal):
            return str(o)
        if isinstance(o, Enum):
            return o.value
        if isinstance(o, (set, frozenset)):
            return sorted(o)
        return DefaultJSONProvider.default(o)


def ok(data: Any = None, status: int = 200, **extra):
    payload = {"success": True, "data": data}
    payload.update(extra)
    return jsonify(payload), status


def fail(message: str, status: int = 400, *, errors: Optional[dict] = None):
    payload: dict = {"success": False, "message": message}
    if errors:
        payload["errors"] = errors
    return jsonify(payload), status


def get_container():
    return current_app.extensions[EXTENSION_KEY]


def current_user_id() -> int:
    return int(session["user_id"])


def current_role() -> str:
    return str(session.get("role") or "")


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return fail("Please sign in to continue", 401)
        return view(*args, **kwargs)

    return wrapper


def permission_required(module: PermissionModule, action: PermissionAction = PermissionAction.READ):
    """Guard a route with one cell of the role permission matrix."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return fail("Please sign in to continue", 401)

            permissions = get_container().permission_service
            if not permissions.has_permission(current_role(), module, action):
                return fail("You do not have permission to perform this action", 403)

            return view(*args, **kwargs)

        return wrapper

    return decorator


def handles_errors(failure_message: str):
    """Translate domain errors into JSON responses.

    Anything unexpected is logged and reported with ``failure_message`` so
    the client can show it next to a retry button.
    """

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            try:
                return view(*args, **kwargs)
            except ValidationError as e:
                return fail(str(e), 400, errors=e.errors)
            except AuthenticationError as e:
                return fail(str(e), 401)
            except AuthorizationError as e:
                return fail(str(e), 403)
            except NotFoundError as e:
                return fail(str(e), 404)
            except Exception:
                current_app.logger.exception("%s (%s %s)", failure_message, request.method, request.path)
                return fail(failure_message, 500)

        return wrapper

    return decorator


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return {}
    return data


def arg_str(name: str) -> Optional[str]:
    value = request.args.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def arg_int(name: str, default: Optional[int] = None) -> Optional[int]:
    value = arg_str(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"Invalid number for '{name}': {value!r}")


def arg_date(name: str, default: Optional[date] = None) -> Optional[date]:
    value = arg_str(name)
    if value is None:
        return default
    return parse_iso_date(value)


def arg_bool(name: str) -> Optional[bool]:
    value = arg_str(name)
    if value is None:
        return None
    return value.lower() in {"1", "true", "yes", "on"}


def log_activity(module: str, action: str, details: Optional[str] = None) -> None:
    """Append an entry to the signed-in user's activity trail."""
    if "user_id" not in session:
        return
    get_container().activity_service.record(
        user_email=str(session.get("email") or ""),
        user_name=str(session.get("name") or ""),
        role=session.get("role"),
        branch=session.get("branch"),
        module=module,
        action=action,
        details=details,
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )


def download(buffer, *, filename: str, mimetype: str):
    return send_file(buffer, mimetype=mimetype, as_attachment=True, download_name=filename)
