from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional

from ..common.datetime_utils import day_bounds, now_local
from ..common.formatting import money, percent_change, share
from ..core.constants import (
    DAILY_TRANSACTIONS_LIMIT,
    RECENT_TRANSACTIONS_LIMIT,
    SALES_TARGET_GROWTH,
    TOP_PRODUCTS_LIMIT,
)
from ..core.enums import SalesPeriod
from .aggregation import (
    Bucket,
    average_amount,
    change_card,
    count_by,
    distinct_customers,
    rollup_products,
    top_by_revenue,
    total_sales,
)
from .period import period_range
from .repository import SalesRepository


class SalesDashboardService:
    """Use case: the sales overview cards, trend chart and leaderboards."""

    def __init__(self, sales: SalesRepository, *, clock: Callable[[], datetime] = now_local):
        self._sales = sales
        self._clock = clock

    def dashboard(self, period: SalesPeriod) -> dict:
        rng = period_range(period, self._clock())

        current = self._sales.list_transactions(start=rng.current.start, end=rng.current.end)
        previous = self._sales.list_transactions(start=rng.previous.start, end=rng.previous.end)

        cur_total, prev_total = total_sales(current), total_sales(previous)
        cards = {
            "total_sales": change_card(money(cur_total), money(prev_total)),
            "orders": change_card(len(current), len(previous)),
            "customers": change_card(distinct_customers(current), distinct_customers(previous)),
            "average_order_value": change_card(
                average_amount(cur_total, len(current)), average_amount(prev_total, len(previous))
            ),
        }

        return {
            "period": rng.period.value,
            "range": {"start": rng.current.start, "end": rng.current.end, "label": rng.current.label},
            "cards": cards,
            "trend": self._trend(rng),
            "top_products": self._top_products(rng),
            "payment_methods": self._payment_methods(current),
            "recent_transactions": [
                {
                    "transaction_number": t.transaction_number,
                    "customer": t.customer_label,
                    "total_amount": t.total_amount,
                    "payment_method": t.payment_method or "N/A",
                    "payment_status": t.payment_status,
                    "transaction_date": t.transaction_date,
                }
                for t in current[:RECENT_TRANSACTIONS_LIMIT]
            ],
        }

    def _trend(self, rng) -> list[dict]:
        span = rng.trend_span
        buckets = [Bucket(seg.label) for seg in rng.segments]
        for tx in self._sales.list_transactions(start=span.start, end=span.end):
            for seg, bucket in zip(rng.segments, buckets):
                if seg.contains(tx.transaction_date):
                    bucket.add(tx)
                    break

        growth = Decimal(SALES_TARGET_GROWTH)
        return [
            {"label": b.label, "sales": money(b.sales), "orders": b.orders, "target": money(b.sales * growth)}
            for b in buckets
        ]

    def _top_products(self, rng) -> list[dict]:
        current = rollup_products(self._sales.list_items(start=rng.current.start, end=rng.current.end))
        previous = rollup_products(self._sales.list_items(start=rng.previous.start, end=rng.previous.end))

        rows = []
        for p in top_by_revenue(current.values(), TOP_PRODUCTS_LIMIT):
            before = previous.get(p.product_id)
            growth = percent_change(p.revenue, before.revenue if before else 0)
            rows.append(
                {
                    "product_id": p.product_id,
                    "name": p.name,
                    "category": p.category,
                    "units": p.units,
                    "revenue": money(p.revenue),
                    "growth": growth,
                    "is_positive": growth >= 0,
                }
            )
        return rows

    @staticmethod
    def _payment_methods(transactions) -> list[dict]:
        total = total_sales(transactions)
        by_method: dict[str, Bucket] = {}
        for tx in transactions:
            method = tx.payment_method or "other"
            by_method.setdefault(method, Bucket(method)).add(tx)

        rows = [
            {"method": b.label, "amount": money(b.sales), "count": b.orders, "share": share(b.sales, total)}
            for b in by_method.values()
        ]
        rows.sort(key=lambda r: (-r["amount"], r["method"]))
        return rows


class DailySalesSummaryService:
    """Use case: one day of sales, hour by hour."""

    def __init__(self, sales: SalesRepository, *, clock: Callable[[], datetime] = now_local):
        self._sales = sales
        self._clock = clock

    def summary(self, day: Optional[date] = None) -> dict:
        day = day or self._clock().date()
        start, end = day_bounds(day)

        transactions = self._sales.list_transactions(start=start, end=end)
        yesterday = self._sales.list_transactions(start=start - timedelta(days=1), end=start)

        total = total_sales(transactions)
        prev_total = total_sales(yesterday)

        hourly = [Bucket(f"{h:02d}:00") for h in range(24)]
        for tx in transactions:
            hourly[tx.transaction_date.hour].add(tx)

        peak = None
        best = Decimal("0")
        for bucket in hourly:
            if bucket.sales > best:
                peak, best = bucket, bucket.sales

        products = rollup_products(self._sales.list_items(start=start, end=end))
        chronological = sorted(transactions, key=lambda t: (t.transaction_date, t.transaction_id))
        statuses = count_by([t.payment_status for t in transactions])

        return {
            "date": day,
            "totals": {
                "total_sales": money(total),
                "orders": len(transactions),
                "customers_served": distinct_customers(transactions),
                "average_order": average_amount(total, len(transactions)),
                "growth": percent_change(total, prev_total),
                "previous_day_sales": money(prev_total),
            },
            "hourly": [
                {"hour": b.label, "sales": money(b.sales), "orders": b.orders, "customers": len(b.customers)}
                for b in hourly
            ],
            "peak_hour": {"hour": peak.label, "sales": money(peak.sales)} if peak else None,
            "top_products": [
                {
                    "product_id": p.product_id,
                    "name": p.name,
                    "units": p.units,
                    "revenue": money(p.revenue),
                    "share": share(p.revenue, total),
                }
                for p in top_by_revenue(products.values(), TOP_PRODUCTS_LIMIT)
            ],
            "transactions": [t.to_view() for t in chronological[:DAILY_TRANSACTIONS_LIMIT]],
            "payment_status": [
                {"status": status, "count": count, "share": share(count, len(transactions))}
                for status, count in sorted(statuses.items(), key=lambda kv: (-kv[1], kv[0]))
            ],
        }
