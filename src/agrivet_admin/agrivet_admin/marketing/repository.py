from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence, Tuple

from .model import Campaign, CampaignEvent, CampaignFilters, CampaignTemplate, MarketingAuditEntry


class CampaignRepository(Protocol):
    def list_campaigns(self, filters: CampaignFilters, *, offset: int, limit: int) -> Tuple[Sequence[Campaign], int]:
        """One page of matching campaigns (newest first) and the total match count."""

        raise NotImplementedError

    def all_campaigns(self) -> Sequence[Campaign]:
        raise NotImplementedError

    def get(self, campaign_id: int) -> Optional[Campaign]:
        raise NotImplementedError

    def create(self, fields: dict) -> int:
        raise NotImplementedError

    def update(self, campaign_id: int, *, changes: dict) -> None:
        raise NotImplementedError

    def delete(self, campaign_id: int) -> bool:
        raise NotImplementedError

    def increment_counter(self, campaign_id: int, column: str) -> None:
        raise NotImplementedError

    def count_using_template(self, template_id: int) -> int:
        raise NotImplementedError


class TemplateRepository(Protocol):
    def list_templates(self, *, include_inactive: bool = False) -> Sequence[CampaignTemplate]:
        raise NotImplementedError

    def get(self, template_id: int) -> Optional[CampaignTemplate]:
        raise NotImplementedError

    def create(self, fields: dict) -> int:
        raise NotImplementedError

    def update(self, template_id: int, *, changes: dict) -> None:
        raise NotImplementedError

    def delete(self, template_id: int) -> bool:
        raise NotImplementedError


class CampaignEventRepository(Protocol):
    def add(
        self,
        *,
        campaign_id: int,
        event_type: str,
        event_data: dict,
        user_agent: Optional[str],
        ip_address: Optional[str],
        referrer: Optional[str],
        device_type: str,
        created_at: datetime,
    ) -> int:
        raise NotImplementedError

    def list_for_campaign(self, campaign_id: int) -> Sequence[CampaignEvent]:
        raise NotImplementedError


class MarketingAuditRepository(Protocol):
    def add(
        self,
        *,
        user_id: Optional[int],
        action: str,
        entity_type: str,
        entity_id: Optional[int],
        old_values: Optional[dict],
        new_values: Optional[dict],
    ) -> None:
        raise NotImplementedError

    def list_recent(self, limit: int) -> Sequence[MarketingAuditEntry]:
        raise NotImplementedError
