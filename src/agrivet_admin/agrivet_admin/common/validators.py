from __future__ import annotations

import re
from urllib.parse import urlparse

from ..core.exceptions import ValidationError

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required", {_key(field_name): f"{field_name} is required"})
    return value.strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        message = f"{field_name} must be at least {min_len} characters"
        raise ValidationError(message, {_key(field_name): message})
    return value


def require_max_length(value: str, field_name: str, max_len: int) -> str:
    if value is not None and len(value) > max_len:
        message = f"{field_name} must be less than {max_len} characters"
        raise ValidationError(message, {_key(field_name): message})
    return value


def require_email(value: str, field_name: str = "Email") -> str:
    value = require_non_empty(value, field_name).lower()
    if not is_email(value):
        raise ValidationError("Please enter a valid email address", {_key(field_name): "Please enter a valid email address"})
    return value


def is_hex_color(value: str) -> bool:
    return bool(value) and bool(_HEX_COLOR.match(value))


def is_http_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def is_email(value: str) -> bool:
    return bool(value) and bool(_EMAIL.match(value))


def is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _key(field_name: str) -> str:
    return field_name.strip().lower().replace(" ", "_")
