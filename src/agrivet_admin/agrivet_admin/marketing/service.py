from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional, Union

from ..common.datetime_utils import now_local
from ..common.devices import device_class
from ..common.formatting import share
from ..core.constants import DEFAULT_LIST_LIMIT, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..core.enums import CampaignEventType, CampaignStatus, CampaignTemplateType
from ..core.exceptions import NotFoundError, ValidationError
from .model import (
    DEFAULT_BACKGROUND_COLOR,
    DEFAULT_CTA_BUTTON_COLOR,
    DEFAULT_CTA_TEXT_COLOR,
    DEFAULT_TEXT_COLOR,
    Campaign,
    CampaignFilters,
    CampaignTemplate,
    event_counter_column,
    merge_styles,
)
from .repository import CampaignEventRepository, CampaignRepository, MarketingAuditRepository, TemplateRepository
from .validation import clean_campaign_fields, validate_campaign_form, validate_campaign_update, validate_template_form

logger = logging.getLogger(__name__)

ANALYTICS_RANGES = {"1d": 1, "7d": 7, "30d": 30}

CAMPAIGN_ENTITY = "marketing_campaigns"
TEMPLATE_ENTITY = "campaign_templates"


class CampaignService:
    """Use case: marketing campaigns, their templates and engagement tracking.

    Every mutation is written to the marketing audit log with the acting user.
    """

    def __init__(
        self,
        campaigns: CampaignRepository,
        templates: TemplateRepository,
        events: CampaignEventRepository,
        audit: MarketingAuditRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._campaigns = campaigns
        self._templates = templates
        self._events = events
        self._audit = audit
        self._clock = clock

    def list_campaigns(
        self, filters: CampaignFilters, *, page: int = 1, limit: int = DEFAULT_PAGE_SIZE
    ) -> dict:
        limit = min(max(int(limit or DEFAULT_PAGE_SIZE), 1), MAX_PAGE_SIZE)
        page = max(int(page or 1), 1)
        rows, total = self._campaigns.list_campaigns(filters, offset=(page - 1) * limit, limit=limit)
        now = self._clock()
        return {"campaigns": [c.to_view(now) for c in rows], "total": total, "page": page, "limit": limit}

    def get(self, campaign_id: int) -> Campaign:
        campaign = self._campaigns.get(int(campaign_id))
        if not campaign:
            raise NotFoundError("Campaign not found")
        return campaign

    def view(self, campaign: Campaign) -> dict:
        return campaign.to_view(self._clock())

    def _resolve_template(self, template_id: Optional[int], template_type: CampaignTemplateType) -> Optional[int]:
        if template_id:
            template = self._templates.get(template_id)
            if not template:
                raise ValidationError("Please fix the highlighted fields", {"template_id": "Template not found"})
            if template.template_type != template_type:
                raise ValidationError(
                    "Please fix the highlighted fields", {"template_id": "Template does not match the campaign type"}
                )
            return template.template_id
        match = next((t for t in self._templates.list_templates() if t.template_type == template_type), None)
        return match.template_id if match else None

    def create(self, data: dict, *, user_id: Optional[int]) -> Campaign:
        errors = validate_campaign_form(data)
        if errors:
            raise ValidationError("Please fix the highlighted fields", errors)

        fields = {
            "background_color": DEFAULT_BACKGROUND_COLOR,
            "text_color": DEFAULT_TEXT_COLOR,
            "cta_button_color": DEFAULT_CTA_BUTTON_COLOR,
            "cta_text_color": DEFAULT_CTA_TEXT_COLOR,
            "is_active": True,
            "is_published": False,
            "target_audience": (),
            "target_channels": (),
        }
        fields.update(clean_campaign_fields(data))
        fields["template_id"] = self._resolve_template(fields.get("template_id"), fields["template_type"])
        fields["created_by"] = user_id
        fields["updated_by"] = user_id

        campaign = self.get(self._campaigns.create(fields))
        self._log(user_id, "create", CAMPAIGN_ENTITY, campaign.campaign_id, None, campaign.to_record())
        return campaign

    def update(self, campaign_id: int, data: dict, *, user_id: Optional[int]) -> Campaign:
        before = self.get(campaign_id)
        errors = validate_campaign_update(data)

        changes = {} if errors else clean_campaign_fields(data)
        merged = dataclasses.replace(before, **{k: v for k, v in changes.items() if k != "template_id"})
        if not errors:
            if merged.publish_date and merged.unpublish_date and merged.unpublish_date <= merged.publish_date:
                errors["unpublish_date"] = "Unpublish date must be after publish date"
            if bool(merged.cta_text) != bool(merged.cta_url):
                key = "cta_url" if merged.cta_text else "cta_text"
                errors[key] = "CTA text and URL must be provided together"
        if errors:
            raise ValidationError("Please fix the highlighted fields", errors)

        if "template_id" in changes or "template_type" in changes:
            changes["template_id"] = self._resolve_template(
                changes.get("template_id", before.template_id), merged.template_type
            )
        changes["updated_by"] = user_id

        self._campaigns.update(before.campaign_id, changes=changes)
        after = self.get(before.campaign_id)
        self._log(user_id, "update", CAMPAIGN_ENTITY, after.campaign_id, before.to_record(), after.to_record())
        return after

    def delete(self, campaign_id: int, *, user_id: Optional[int]) -> None:
        before = self.get(campaign_id)
        if not self._campaigns.delete(before.campaign_id):
            raise NotFoundError("Campaign not found")
        self._log(user_id, "delete", CAMPAIGN_ENTITY, before.campaign_id, before.to_record(), None)
        logger.info("Campaign %s deleted by %s", before.campaign_id, user_id)

    def duplicate(self, campaign_id: int, *, user_id: Optional[int]) -> Campaign:
        original = self.get(campaign_id)
        fields = original.to_record()
        fields.update(
            {
                "campaign_name": f"{original.campaign_name} (Copy)",
                "is_published": False,
                "publish_date": None,
                "unpublish_date": None,
                "views_count": 0,
                "clicks_count": 0,
                "conversions_count": 0,
                "created_by": user_id,
                "updated_by": user_id,
            }
        )
        copy = self.get(self._campaigns.create(fields))
        self._log(user_id, "duplicate", CAMPAIGN_ENTITY, copy.campaign_id, original.to_record(), copy.to_record())
        return copy

    def publish(self, campaign_id: int, *, user_id: Optional[int]) -> Campaign:
        campaign = self.get(campaign_id)
        if not campaign.is_active:
            raise ValidationError("Archived campaigns cannot be published")
        changes = {"is_published": True, "publish_date": self._clock(), "unpublish_date": None, "updated_by": user_id}
        return self._set_flags(campaign, changes, action="publish", user_id=user_id)

    def unpublish(self, campaign_id: int, *, user_id: Optional[int]) -> Campaign:
        campaign = self.get(campaign_id)
        changes = {"is_published": False, "unpublish_date": self._clock(), "updated_by": user_id}
        return self._set_flags(campaign, changes, action="unpublish", user_id=user_id)

    def toggle_active(self, campaign_id: int, *, user_id: Optional[int], is_active: Optional[bool] = None) -> Campaign:
        campaign = self.get(campaign_id)
        target = (not campaign.is_active) if is_active is None else bool(is_active)
        return self._set_flags(
            campaign, {"is_active": target, "updated_by": user_id}, action="toggle_status", user_id=user_id
        )

    def _set_flags(self, campaign: Campaign, changes: dict, *, action: str, user_id: Optional[int]) -> Campaign:
        self._campaigns.update(campaign.campaign_id, changes=changes)
        logged = {k: v for k, v in changes.items() if k != "updated_by"}
        self._log(user_id, action, CAMPAIGN_ENTITY, campaign.campaign_id, None, logged)
        return self.get(campaign.campaign_id)

    def track_event(
        self,
        campaign_id: int,
        event_type: str,
        *,
        event_data: Optional[dict] = None,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
        referrer: Optional[str] = None,
    ) -> None:
        campaign = self.get(campaign_id)
        try:
            kind = CampaignEventType((event_type or "").strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown event type: {event_type!r}", {"event_type": "Unknown event type"})
        if event_data is not None and not isinstance(event_data, dict):
            raise ValidationError("Event data must be an object", {"event_data": "Must be an object"})

        self._events.add(
            campaign_id=campaign.campaign_id,
            event_type=kind.value,
            event_data=event_data or {},
            user_agent=user_agent,
            ip_address=ip_address,
            referrer=referrer,
            device_type=device_class(user_agent),
            created_at=self._clock(),
        )
        column = event_counter_column(kind)
        if column:
            self._campaigns.increment_counter(campaign.campaign_id, column)

    def analytics(self, campaign_id: int, date_range: str = "7d") -> dict:
        campaign = self.get(campaign_id)
        days = ANALYTICS_RANGES.get((date_range or "7d").lower())
        if days is None:
            raise ValidationError(f"Unknown range: {date_range!r}", {"range": "Use 1d, 7d or 30d"})

        events = self._events.list_for_campaign(campaign.campaign_id)
        totals = {t: 0 for t in CampaignEventType}
        for e in events:
            totals[e.event_type] += 1

        today = self._clock().date()
        daily = []
        for i in range(days - 1, -1, -1):
            day = today - timedelta(days=i)
            counts = {t: 0 for t in CampaignEventType}
            for e in events:
                if e.created_at.date() == day:
                    counts[e.event_type] += 1
            daily.append(
                {
                    "date": day,
                    "views": counts[CampaignEventType.VIEW],
                    "clicks": counts[CampaignEventType.CLICK],
                    "conversions": counts[CampaignEventType.CONVERSION],
                }
            )

        views = totals[CampaignEventType.VIEW]
        clicks = totals[CampaignEventType.CLICK]
        conversions = totals[CampaignEventType.CONVERSION]
        return {
            "campaign_id": campaign.campaign_id,
            "range": date_range,
            "total_views": views,
            "total_clicks": clicks,
            "total_conversions": conversions,
            "click_through_rate": share(clicks, views),
            "conversion_rate": share(conversions, clicks),
            "daily_stats": daily,
        }

    def dashboard_metrics(self) -> dict:
        campaigns = self._campaigns.all_campaigns()
        now = self._clock()
        statuses = [c.status(now) for c in campaigns]

        views = sum(c.views_count for c in campaigns)
        clicks = sum(c.clicks_count for c in campaigns)
        conversions = sum(c.conversions_count for c in campaigns)
        return {
            "total_campaigns": len(campaigns),
            "active_campaigns": sum(1 for c in campaigns if c.is_active),
            "published_campaigns": sum(1 for c in campaigns if c.is_published),
            "status_counts": {s.value: statuses.count(s) for s in CampaignStatus},
            "total_views": views,
            "total_clicks": clicks,
            "total_conversions": conversions,
            "click_through_rate": share(clicks, views),
            "conversion_rate": share(conversions, clicks),
        }

    def list_templates(self, *, include_inactive: bool = False) -> list[CampaignTemplate]:
        return list(self._templates.list_templates(include_inactive=include_inactive))

    def _get_template(self, template_id: int) -> CampaignTemplate:
        template = self._templates.get(int(template_id))
        if not template:
            raise NotFoundError("Template not found")
        return template

    @staticmethod
    def _template_fields(data: dict) -> dict:
        fields: dict = {}
        if "template_name" in data:
            fields["template_name"] = str(data["template_name"]).strip()
        if "template_type" in data:
            fields["template_type"] = CampaignTemplateType(str(data["template_type"]))
        if "description" in data:
            fields["description"] = (data.get("description") or "").strip() or None
        if "default_styles" in data:
            fields["default_styles"] = dict(data.get("default_styles") or {})
        if "required_fields" in data:
            fields["required_fields"] = tuple(data.get("required_fields") or ())
        if "is_active" in data:
            fields["is_active"] = bool(data["is_active"])
        return fields

    def create_template(self, data: dict, *, user_id: Optional[int]) -> CampaignTemplate:
        errors = validate_template_form(data)
        if errors:
            raise ValidationError("Please fix the highlighted fields", errors)

        fields = {"default_styles": {}, "required_fields": (), "is_active": True}
        fields.update(self._template_fields(data))
        fields["created_by"] = user_id
        template = self._get_template(self._templates.create(fields))
        self._log(user_id, "create", TEMPLATE_ENTITY, template.template_id, None, template.to_view())
        return template

    def update_template(self, template_id: int, data: dict, *, user_id: Optional[int]) -> CampaignTemplate:
        before = self._get_template(template_id)
        errors = validate_template_form(data, partial=True)
        if errors:
            raise ValidationError("Please fix the highlighted fields", errors)

        self._templates.update(before.template_id, changes=self._template_fields(data))
        after = self._get_template(before.template_id)
        self._log(user_id, "update", TEMPLATE_ENTITY, after.template_id, before.to_view(), after.to_view())
        return after

    def delete_template(self, template_id: int, *, user_id: Optional[int]) -> None:
        template = self._get_template(template_id)
        in_use = self._campaigns.count_using_template(template.template_id)
        if in_use:
            raise ValidationError(f"Template is used by {in_use} campaign(s); deactivate it instead")
        self._templates.delete(template.template_id)
        self._log(user_id, "delete", TEMPLATE_ENTITY, template.template_id, template.to_view(), None)

    def preview(self, campaign: Union[Campaign, int]) -> dict:
        if not isinstance(campaign, Campaign):
            campaign = self.get(campaign)

        template = self._templates.get(campaign.template_id) if campaign.template_id else None
        styles = merge_styles(
            template.default_styles if template else None,
            {"background_color": campaign.background_color, "text_color": campaign.text_color},
        )
        cta = None
        if campaign.cta_text and campaign.cta_url:
            cta = {
                "text": campaign.cta_text,
                "url": campaign.cta_url,
                "button_color": campaign.cta_button_color or DEFAULT_CTA_BUTTON_COLOR,
                "text_color": campaign.cta_text_color or DEFAULT_CTA_TEXT_COLOR,
            }

        return {
            "campaign_id": campaign.campaign_id,
            "template_type": campaign.template_type,
            "title": campaign.title,
            "description": campaign.description,
            "content": campaign.content,
            "image": {"url": campaign.image_url, "alt": campaign.image_alt_text or campaign.title}
            if campaign.image_url
            else None,
            "styles": styles,
            "cta": cta,
            "status": campaign.status(self._clock()),
        }

    def audit_log(self, limit: int = DEFAULT_LIST_LIMIT) -> list[dict]:
        return [e.to_view() for e in self._audit.list_recent(limit)]

    def _log(self, user_id, action: str, entity_type: str, entity_id, old_values, new_values) -> None:
        self._audit.add(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            old_values=old_values,
            new_values=new_values,
        )
