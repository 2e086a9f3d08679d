from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional, Sequence, Tuple

from ..common.datetime_utils import day_bounds
from ..core.enums import CampaignEventType, CampaignTemplateType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import WhereBuilder, db_cursor, dump_json, fetchall, fetchone, load_json
from .model import Campaign, CampaignEvent, CampaignFilters, CampaignTemplate, MarketingAuditEntry
from .repository import CampaignEventRepository, CampaignRepository, MarketingAuditRepository, TemplateRepository

_CAMPAIGN_WRITABLE = (
    "campaign_name",
    "template_id",
    "template_type",
    "title",
    "description",
    "content",
    "background_color",
    "text_color",
    "image_url",
    "image_alt_text",
    "cta_text",
    "cta_url",
    "cta_button_color",
    "cta_text_color",
    "is_active",
    "is_published",
    "publish_date",
    "unpublish_date",
    "target_audience",
    "target_channels",
    "views_count",
    "clicks_count",
    "conversions_count",
    "created_by",
    "updated_by",
)

_TEMPLATE_WRITABLE = (
    "template_name",
    "template_type",
    "description",
    "default_styles",
    "required_fields",
    "is_active",
    "created_by",
)

_JSON_COLUMNS = {"target_audience", "target_channels", "default_styles", "required_fields", "event_data"}
_COUNTERS = {"views_count", "clicks_count", "conversions_count"}


def _db_value(column: str, value: Any) -> Any:
    if column in _JSON_COLUMNS:
        return dump_json(list(value) if isinstance(value, tuple) else value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return 1 if value else 0
    return value


def _to_campaign(r: dict) -> Campaign:
    return Campaign(
        campaign_id=int(r["campaign_id"]),
        campaign_name=r["campaign_name"],
        template_type=CampaignTemplateType(r["template_type"]),
        title=r["title"],
        template_id=r.get("template_id"),
        description=r.get("description"),
        content=r.get("content"),
        background_color=r.get("background_color") or "#ffffff",
        text_color=r.get("text_color") or "#000000",
        image_url=r.get("image_url"),
        image_alt_text=r.get("image_alt_text"),
        cta_text=r.get("cta_text"),
        cta_url=r.get("cta_url"),
        cta_button_color=r.get("cta_button_color") or "#007bff",
        cta_text_color=r.get("cta_text_color") or "#ffffff",
        is_active=bool(r.get("is_active", True)),
        is_published=bool(r.get("is_published", False)),
        publish_date=r.get("publish_date"),
        unpublish_date=r.get("unpublish_date"),
        target_audience=tuple(load_json(r.get("target_audience"), [])),
        target_channels=tuple(load_json(r.get("target_channels"), [])),
        views_count=int(r.get("views_count") or 0),
        clicks_count=int(r.get("clicks_count") or 0),
        conversions_count=int(r.get("conversions_count") or 0),
        created_by=r.get("created_by"),
        updated_by=r.get("updated_by"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


def _to_template(r: dict) -> CampaignTemplate:
    return CampaignTemplate(
        template_id=int(r["template_id"]),
        template_name=r["template_name"],
        template_type=CampaignTemplateType(r["template_type"]),
        description=r.get("description"),
        default_styles=load_json(r.get("default_styles"), {}),
        required_fields=tuple(load_json(r.get("required_fields"), [])),
        is_active=bool(r.get("is_active", True)),
        created_by=r.get("created_by"),
        created_at=r.get("created_at"),
    )


def _insert(cur, table: str, writable: Sequence[str], fields: dict) -> int:
    columns = [c for c in writable if c in fields]
    cur.execute(
        f"INSERT INTO {table}({', '.join(columns)}) VALUES({', '.join(['%s'] * len(columns))})",
        tuple(_db_value(c, fields[c]) for c in columns),
    )
    return int(cur.lastrowid)


def _update(cur, table: str, key: str, writable: Sequence[str], row_id: int, changes: dict) -> None:
    columns = [c for c in writable if c in changes]
    if not columns:
        return
    cur.execute(
        f"UPDATE {table} SET {', '.join(f'{c}=%s' for c in columns)} WHERE {key}=%s",
        tuple(_db_value(c, changes[c]) for c in columns) + (int(row_id),),
    )


class MySQLCampaignRepository(CampaignRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_campaigns(self, filters: CampaignFilters, *, offset: int, limit: int) -> Tuple[Sequence[Campaign], int]:
        where = (
            WhereBuilder()
            .add_if(filters.template_type.value if filters.template_type else None, "template_type=%s")
            .add_if(None if filters.is_active is None else int(filters.is_active), "is_active=%s")
            .add_if(None if filters.is_published is None else int(filters.is_published), "is_published=%s")
            .add_if(filters.created_by, "created_by=%s")
        )
        if filters.date_from:
            where.add("created_at >= %s", day_bounds(filters.date_from)[0])
        if filters.date_to:
            where.add("created_at < %s", day_bounds(filters.date_to)[1])
        if filters.search:
            like = f"%{filters.search.strip()}%"
            where.add("(campaign_name LIKE %s OR title LIKE %s)", like, like)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM marketing_campaigns WHERE {where.sql}", tuple(where.params))
            row = fetchone(cur)
            total = int(row["total"]) if row else 0

            cur.execute(
                f"""
                SELECT * FROM marketing_campaigns
                WHERE {where.sql}
                ORDER BY created_at DESC, campaign_id DESC
                LIMIT %s OFFSET %s
                """,
                (*where.params, int(limit), int(offset)),
            )
            return [_to_campaign(r) for r in fetchall(cur)], total

    def all_campaigns(self) -> Sequence[Campaign]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM marketing_campaigns ORDER BY created_at DESC")
            return [_to_campaign(r) for r in fetchall(cur)]

    def get(self, campaign_id: int) -> Optional[Campaign]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM marketing_campaigns WHERE campaign_id=%s", (int(campaign_id),))
            row = fetchone(cur)
            return _to_campaign(row) if row else None

    def create(self, fields: dict) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            return _insert(cur, "marketing_campaigns", _CAMPAIGN_WRITABLE, fields)

    def update(self, campaign_id: int, *, changes: dict) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            _update(cur, "marketing_campaigns", "campaign_id", _CAMPAIGN_WRITABLE, campaign_id, changes)

    def delete(self, campaign_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM campaign_events WHERE campaign_id=%s", (int(campaign_id),))
            cur.execute("DELETE FROM marketing_campaigns WHERE campaign_id=%s", (int(campaign_id),))
            return cur.rowcount > 0

    def increment_counter(self, campaign_id: int, column: str) -> None:
        if column not in _COUNTERS:
            raise ValueError(f"Not a campaign counter: {column}")
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE marketing_campaigns SET {column} = {column} + 1 WHERE campaign_id=%s",
                (int(campaign_id),),
            )

    def count_using_template(self, template_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS total FROM marketing_campaigns WHERE template_id=%s", (int(template_id),))
            row = fetchone(cur)
            return int(row["total"]) if row else 0


class MySQLTemplateRepository(TemplateRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_templates(self, *, include_inactive: bool = False) -> Sequence[CampaignTemplate]:
        where = "1=1" if include_inactive else "is_active=1"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT * FROM campaign_templates WHERE {where} ORDER BY template_type, template_name")
            return [_to_template(r) for r in fetchall(cur)]

    def get(self, template_id: int) -> Optional[CampaignTemplate]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM campaign_templates WHERE template_id=%s", (int(template_id),))
            row = fetchone(cur)
            return _to_template(row) if row else None

    def create(self, fields: dict) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            return _insert(cur, "campaign_templates", _TEMPLATE_WRITABLE, fields)

    def update(self, template_id: int, *, changes: dict) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            _update(cur, "campaign_templates", "template_id", _TEMPLATE_WRITABLE, template_id, changes)

    def delete(self, template_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM campaign_templates WHERE template_id=%s", (int(template_id),))
            return cur.rowcount > 0


class MySQLCampaignEventRepository(CampaignEventRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO campaign_events(
                    campaign_id, event_type, event_data, user_agent, ip_address, referrer, device_type, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(campaign_id),
                    event_type,
                    dump_json(event_data or {}),
                    user_agent,
                    ip_address,
                    referrer,
                    device_type,
                    created_at,
                ),
            )
            return int(cur.lastrowid)

    def list_for_campaign(self, campaign_id: int) -> Sequence[CampaignEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT * FROM campaign_events WHERE campaign_id=%s ORDER BY created_at DESC",
                (int(campaign_id),),
            )
            return [
                CampaignEvent(
                    event_id=int(r["event_id"]),
                    campaign_id=int(r["campaign_id"]),
                    event_type=CampaignEventType(r["event_type"]),
                    created_at=r["created_at"],
                    event_data=load_json(r.get("event_data"), {}),
                    user_agent=r.get("user_agent"),
                    ip_address=r.get("ip_address"),
                    referrer=r.get("referrer"),
                    device_type=r.get("device_type") or "desktop",
                )
                for r in fetchall(cur)
            ]


class MySQLMarketingAuditRepository(MarketingAuditRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO marketing_audit_logs(user_id, action, entity_type, entity_id, old_values, new_values)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (user_id, action, entity_type, entity_id, dump_json(old_values), dump_json(new_values)),
            )

    def list_recent(self, limit: int) -> Sequence[MarketingAuditEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT * FROM marketing_audit_logs ORDER BY created_at DESC, audit_id DESC LIMIT %s",
                (int(limit),),
            )
            return [
                MarketingAuditEntry(
                    audit_id=int(r["audit_id"]),
                    user_id=r.get("user_id"),
                    action=r["action"],
                    entity_type=r["entity_type"],
                    entity_id=r.get("entity_id"),
                    old_values=load_json(r.get("old_values")),
                    new_values=load_json(r.get("new_values")),
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]
