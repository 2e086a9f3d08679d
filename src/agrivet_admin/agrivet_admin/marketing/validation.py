"""Campaign and template form rules.

Validators return a ``{field: message}`` mapping; an empty mapping means the
data is acceptable.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional

from ..common.datetime_utils import parse_iso_datetime
from ..common.validators import is_blank, is_hex_color, is_http_url
from ..core.enums import CampaignTemplateType
from ..core.exceptions import ValidationError

COLOR_FIELDS = ("background_color", "text_color", "cta_button_color", "cta_text_color")
TEXT_FIELDS = ("campaign_name", "title", "description", "content", "image_url", "image_alt_text", "cta_text", "cta_url")
LIST_FIELDS = ("target_audience", "target_channels")
DATE_FIELDS = ("publish_date", "unpublish_date")

MAX_LENGTHS = {
    "campaign_name": 255,
    "title": 500,
    "description": 2000,
    "content": 10000,
    "image_alt_text": 255,
    "cta_text": 100,
}

TEMPLATE_TYPES = {t.value for t in CampaignTemplateType}


def _too_long(value: Any, limit: int) -> bool:
    return isinstance(value, str) and len(value) > limit


def _parse_date(value: Any) -> Optional[datetime]:
    if is_blank(value):
        return None
    if isinstance(value, datetime):
        return value
    return parse_iso_datetime(str(value))


def _check(data: Mapping[str, Any], errors: dict[str, str], *, partial: bool) -> None:
    def given(key: str) -> bool:
        return key in data if partial else True

    for key in TEXT_FIELDS:
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            errors[key] = "Must be text"

    if given("campaign_name") and "campaign_name" not in errors:
        if is_blank(data.get("campaign_name")):
            errors["campaign_name"] = "Campaign name is required"
        elif _too_long(data["campaign_name"], MAX_LENGTHS["campaign_name"]):
            errors["campaign_name"] = "Campaign name must be less than 255 characters"

    if given("title") and "title" not in errors:
        if is_blank(data.get("title")):
            errors["title"] = "Title is required"
        elif _too_long(data["title"], MAX_LENGTHS["title"]):
            errors["title"] = "Title must be less than 500 characters"

    if given("template_type"):
        if is_blank(data.get("template_type")):
            errors["template_type"] = "Template type is required"
        elif str(data["template_type"]) not in TEMPLATE_TYPES:
            errors["template_type"] = "Unknown template type"

    if _too_long(data.get("description"), MAX_LENGTHS["description"]):
        errors["description"] = "Description must be less than 2000 characters"
    if _too_long(data.get("content"), MAX_LENGTHS["content"]):
        errors["content"] = "Content must be less than 10000 characters"
    if _too_long(data.get("image_alt_text"), MAX_LENGTHS["image_alt_text"]):
        errors["image_alt_text"] = "Alt text must be less than 255 characters"

    for key in COLOR_FIELDS:
        value = data.get(key)
        if not is_blank(value) and not is_hex_color(str(value)):
            errors[key] = "Please enter a valid hex color"

    cta_text = data.get("cta_text")
    cta_url = data.get("cta_url")
    if cta_text is not None and not isinstance(cta_text, str):
        errors["cta_text"] = "CTA text must be text"
    elif cta_text is not None and cta_text != "" and not cta_text.strip():
        errors["cta_text"] = "CTA text cannot be blank"
    elif _too_long(cta_text, MAX_LENGTHS["cta_text"]):
        errors["cta_text"] = "CTA text must be less than 100 characters"

    if not is_blank(cta_url) and not is_http_url(str(cta_url)):
        errors["cta_url"] = "Please enter a valid URL"

    if not is_blank(cta_text) and is_blank(cta_url) and "cta_url" not in errors:
        errors["cta_url"] = "CTA URL is required when CTA text is provided"
    if not is_blank(cta_url) and is_blank(cta_text) and "cta_text" not in errors:
        errors["cta_text"] = "CTA text is required when CTA URL is provided"

    dates: dict[str, Optional[datetime]] = {}
    for key in DATE_FIELDS:
        try:
            dates[key] = _parse_date(data.get(key))
        except ValidationError:
            errors[key] = "Please enter a valid date"
    if dates.get("publish_date") and dates.get("unpublish_date"):
        if dates["unpublish_date"] <= dates["publish_date"]:
            errors["unpublish_date"] = "Unpublish date must be after publish date"

    for key in LIST_FIELDS:
        value = data.get(key)
        if value is not None and not isinstance(value, list):
            errors[key] = "Must be a list"


def validate_campaign_form(data: Mapping[str, Any]) -> dict[str, str]:
    errors: dict[str, str] = {}
    _check(data, errors, partial=False)
    return errors


def validate_campaign_update(data: Mapping[str, Any]) -> dict[str, str]:
    errors: dict[str, str] = {}
    _check(data, errors, partial=True)
    return errors


def validate_template_form(data: Mapping[str, Any], *, partial: bool = False) -> dict[str, str]:
    errors: dict[str, str] = {}

    if not partial or "template_name" in data:
        name = data.get("template_name")
        if is_blank(name):
            errors["template_name"] = "Template name is required"
        elif not isinstance(name, str):
            errors["template_name"] = "Must be text"
        elif _too_long(name, 255):
            errors["template_name"] = "Template name must be less than 255 characters"

    if not partial or "template_type" in data:
        if str(data.get("template_type") or "") not in TEMPLATE_TYPES:
            errors["template_type"] = "Unknown template type"

    if _too_long(data.get("description"), 2000):
        errors["description"] = "Description must be less than 2000 characters"

    styles = data.get("default_styles")
    if styles is not None and not isinstance(styles, dict):
        errors["default_styles"] = "Default styles must be an object"

    required = data.get("required_fields")
    if required is not None and not (isinstance(required, list) and all(isinstance(f, str) for f in required)):
        errors["required_fields"] = "Required fields must be a list of field names"

    return errors


def clean_campaign_fields(data: Mapping[str, Any]) -> dict[str, Any]:
    """Normalize the supplied campaign keys into column values.

    Call only after validation passed.
    """
    out: dict[str, Any] = {}
    for key in TEXT_FIELDS:
        if key in data:
            value = data[key]
            out[key] = value.strip() if isinstance(value, str) and value.strip() else None
    for key in COLOR_FIELDS:
        if key in data and not is_blank(data[key]):
            out[key] = str(data[key]).lower()
    if "template_type" in data:
        out["template_type"] = CampaignTemplateType(str(data["template_type"]))
    if "template_id" in data:
        out["template_id"] = int(data["template_id"]) if str(data["template_id"] or "").isdigit() else None
    for key in DATE_FIELDS:
        if key in data:
            out[key] = _parse_date(data[key])
    for key in LIST_FIELDS:
        if key in data:
            out[key] = tuple(str(v) for v in (data[key] or []))
    if "is_active" in data:
        out["is_active"] = bool(data["is_active"])
    return out
