from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional, Tuple

from ..core.enums import CampaignEventType, CampaignStatus, CampaignTemplateType

DEFAULT_BACKGROUND_COLOR = "#ffffff"
DEFAULT_TEXT_COLOR = "#000000"
DEFAULT_CTA_BUTTON_COLOR = "#007bff"
DEFAULT_CTA_TEXT_COLOR = "#ffffff"


@dataclass(frozen=True)
class CampaignTemplate:
    template_id: int
    template_name: str
    template_type: CampaignTemplateType
    description: Optional[str] = None
    default_styles: dict = field(default_factory=dict)
    required_fields: Tuple[str, ...] = ()
    is_active: bool = True
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    def to_view(self) -> dict:
        return {
            "template_id": self.template_id,
            "template_name": self.template_name,
            "template_type": self.template_type,
            "description": self.description,
            "default_styles": dict(self.default_styles),
            "required_fields": list(self.required_fields),
            "is_active": self.is_active,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class Campaign:
    campaign_id: int
    campaign_name: str
    template_type: CampaignTemplateType
    title: str
    template_id: Optional[int] = None
    description: Optional[str] = None
    content: Optional[str] = None
    background_color: str = DEFAULT_BACKGROUND_COLOR
    text_color: str = DEFAULT_TEXT_COLOR
    image_url: Optional[str] = None
    image_alt_text: Optional[str] = None
    cta_text: Optional[str] = None
    cta_url: Optional[str] = None
    cta_button_color: str = DEFAULT_CTA_BUTTON_COLOR
    cta_text_color: str = DEFAULT_CTA_TEXT_COLOR
    is_active: bool = True
    is_published: bool = False
    publish_date: Optional[datetime] = None
    unpublish_date: Optional[datetime] = None
    target_audience: Tuple[str, ...] = ()
    target_channels: Tuple[str, ...] = ()
    views_count: int = 0
    clicks_count: int = 0
    conversions_count: int = 0
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def status(self, now: datetime) -> CampaignStatus:
        if not self.is_active:
            return CampaignStatus.ARCHIVED
        if self.unpublish_date and self.unpublish_date <= now:
            return CampaignStatus.UNPUBLISHED
        if not self.is_published:
            return CampaignStatus.DRAFT
        if self.publish_date and self.publish_date > now:
            return CampaignStatus.SCHEDULED
        return CampaignStatus.PUBLISHED

    def to_record(self) -> dict:
        """Plain column values, as stored and as written to the audit log."""
        return {
            "campaign_name": self.campaign_name,
            "template_id": self.template_id,
            "template_type": self.template_type.value,
            "title": self.title,
            "description": self.description,
            "content": self.content,
            "background_color": self.background_color,
            "text_color": self.text_color,
            "image_url": self.image_url,
            "image_alt_text": self.image_alt_text,
            "cta_text": self.cta_text,
            "cta_url": self.cta_url,
            "cta_button_color": self.cta_button_color,
            "cta_text_color": self.cta_text_color,
            "is_active": self.is_active,
            "is_published": self.is_published,
            "publish_date": self.publish_date,
            "unpublish_date": self.unpublish_date,
            "target_audience": list(self.target_audience),
            "target_channels": list(self.target_channels),
        }

    def to_view(self, now: datetime) -> dict:
        view = self.to_record()
        view.update(
            {
                "campaign_id": self.campaign_id,
                "status": self.status(now),
                "views_count": self.views_count,
                "clicks_count": self.clicks_count,
                "conversions_count": self.conversions_count,
                "created_by": self.created_by,
                "updated_by": self.updated_by,
                "created_at": self.created_at,
                "updated_at": self.updated_at,
            }
        )
        return view


@dataclass(frozen=True)
class CampaignEvent:
    event_id: int
    campaign_id: int
    event_type: CampaignEventType
    created_at: datetime
    event_data: dict = field(default_factory=dict)
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    referrer: Optional[str] = None
    device_type: str = "desktop"


@dataclass(frozen=True)
class MarketingAuditEntry:
    audit_id: int
    user_id: Optional[int]
    action: str
    entity_type: str
    entity_id: Optional[int]
    old_values: Optional[dict]
    new_values: Optional[dict]
    created_at: Optional[datetime] = None

    def to_view(self) -> dict:
        return {
            "audit_id": self.audit_id,
            "user_id": self.user_id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "old_values": self.old_values,
            "new_values": self.new_values,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class CampaignFilters:
    template_type: Optional[CampaignTemplateType] = None
    is_active: Optional[bool] = None
    is_published: Optional[bool] = None
    created_by: Optional[int] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: Optional[str] = None


def event_counter_column(event_type: CampaignEventType) -> Optional[str]:
    """Campaign counter bumped by an event; impressions are stored only."""
    return {
        CampaignEventType.VIEW: "views_count",
        CampaignEventType.CLICK: "clicks_count",
        CampaignEventType.CONVERSION: "conversions_count",
    }.get(event_type)


def merge_styles(defaults: Optional[dict], overrides: dict[str, Any]) -> dict:
    merged = dict(defaults or {})
    merged.update({k: v for k, v in overrides.items() if v})
    return merged
