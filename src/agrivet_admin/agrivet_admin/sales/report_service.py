from __future__ import annotations

import math
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional

from ..common.datetime_utils import add_months, day_bounds, now_local
from ..common.formatting import money, percent_change, share, to_decimal
from ..core.constants import DEFAULT_PAGE_SIZE, EXPORT_ROW_LIMIT, MAX_PAGE_SIZE, MONTHLY_HISTORY_MONTHS, TOP_PRODUCTS_LIMIT
from ..core.exceptions import ValidationError
from .aggregation import (
    Bucket,
    ProductTotals,
    average_amount,
    margin_percent,
    rollup_products,
    top_by_revenue,
    total_sales,
)
from .model import RecordFilters, Transaction
from .period import Window, previous_window
from .repository import SalesRepository

COMPLETED = "completed"

PRODUCT_EXPORT_COLUMNS = [
    "SKU",
    "Product",
    "Category",
    "Units Sold",
    "Revenue",
    "Cost",
    "Profit",
    "Margin %",
    "Growth %",
    "Average Price",
    "Stock",
]

RECORD_EXPORT_COLUMNS = [
    "Transaction",
    "Date",
    "Time",
    "Customer",
    "Items",
    "Total",
    "Payment Method",
    "Status",
    "Cashier",
    "Branch",
]


def date_window(start: date, end: date) -> Window:
    if end < start:
        raise ValidationError("End date must be on or after the start date", {"end": "Must not be before start"})
    return Window(day_bounds(start)[0], day_bounds(end)[1])


class ProductSalesReportService:
    """Per-product performance over a date range, compared with the range before it."""

    def __init__(self, sales: SalesRepository):
        self._sales = sales

    def report(
        self, start: date, end: date, *, category: Optional[str] = None, search: Optional[str] = None
    ) -> dict:
        window = date_window(start, end)
        before = previous_window(window)

        current = rollup_products(self._sales.list_items(start=window.start, end=window.end))
        previous = rollup_products(self._sales.list_items(start=before.start, end=before.end))

        term = (search or "").strip().lower()
        rows = []
        for product in self._sales.list_products(category=category):
            if term and term not in product.name.lower() and term not in product.sku.lower():
                continue

            sold = current.get(product.product_id)
            if sold is None or (sold.units == 0 and sold.revenue == 0):
                continue

            cost = product.cost_price * sold.units
            profit = sold.revenue - cost
            prev = previous.get(product.product_id)
            growth = percent_change(sold.revenue, prev.revenue if prev else 0)
            rows.append(
                {
                    "product_id": product.product_id,
                    "sku": product.sku,
                    "name": product.name,
                    "category": product.category_name or "Uncategorized",
                    "units": sold.units,
                    "revenue": money(sold.revenue),
                    "cost": money(cost),
                    "profit": money(profit),
                    "margin": margin_percent(sold.revenue, cost),
                    "growth": growth,
                    "is_positive": growth >= 0,
                    "average_price": money(sold.revenue / sold.units) if sold.units else money(0),
                    "stock": product.stock_quantity,
                }
            )

        rows.sort(key=lambda r: (-r["revenue"], r["name"]))
        totals = {
            "revenue": money(sum((r["revenue"] for r in rows), Decimal("0"))),
            "units": sum((r["units"] for r in rows), Decimal("0")),
            "products": len(rows),
            "average_margin": round(sum(r["margin"] for r in rows) / len(rows), 1) if rows else 0.0,
        }
        return {"start": start, "end": end, "rows": rows, "totals": totals}

    @staticmethod
    def export_rows(rows: list[dict]) -> list[dict]:
        return [
            {
                "SKU": r["sku"],
                "Product": r["name"],
                "Category": r["category"],
                "Units Sold": float(r["units"]),
                "Revenue": float(r["revenue"]),
                "Cost": float(r["cost"]),
                "Profit": float(r["profit"]),
                "Margin %": r["margin"],
                "Growth %": r["growth"],
                "Average Price": float(r["average_price"]),
                "Stock": float(r["stock"]),
            }
            for r in rows
        ]


class SalesValueService:
    """Where the money comes from: categories, best sellers and the monthly curve.

    Only completed transactions count towards sales value.
    """

    def __init__(self, sales: SalesRepository):
        self._sales = sales

    def breakdown(self, start: date, end: date) -> dict:
        window = date_window(start, end)
        before = previous_window(window)

        items = self._sales.list_items(start=window.start, end=window.end, payment_status=COMPLETED)
        prev_items = self._sales.list_items(start=before.start, end=before.end, payment_status=COMPLETED)

        total = total_sales(self._sales.list_transactions(start=window.start, end=window.end, payment_status=COMPLETED))
        prev_total = total_sales(
            self._sales.list_transactions(start=before.start, end=before.end, payment_status=COMPLETED)
        )

        return {
            "start": start,
            "end": end,
            "total": money(total),
            "previous_total": money(prev_total),
            "change": percent_change(total, prev_total),
            "categories": self._categories(items, prev_items),
            "top_products": [self._product_row(p) for p in top_by_revenue(rollup_products(items).values(), TOP_PRODUCTS_LIMIT)],
            "monthly": self._monthly(end),
        }

    @staticmethod
    def _categories(items, prev_items) -> list[dict]:
        def by_category(rows) -> dict[str, Decimal]:
            out: dict[str, Decimal] = {}
            for item in rows:
                name = item.category_name or "Uncategorized"
                out[name] = out.get(name, Decimal("0")) + item.revenue
            return out

        current = by_category(items)
        previous = by_category(prev_items)
        revenue = sum(current.values(), Decimal("0"))

        rows = [
            {
                "category": name,
                "revenue": money(amount),
                "share": share(amount, revenue),
                "growth": percent_change(amount, previous.get(name, 0)),
            }
            for name, amount in current.items()
        ]
        rows.sort(key=lambda r: (-r["revenue"], r["category"]))
        return rows

    @staticmethod
    def _product_row(p: ProductTotals) -> dict:
        return {
            "product_id": p.product_id,
            "name": p.name,
            "units": p.units,
            "revenue": money(p.revenue),
            "margin": margin_percent(p.revenue, p.cost),
        }

    def _monthly(self, end: date) -> list[dict]:
        last = end.replace(day=1)
        months = [add_months(last, -i) for i in range(MONTHLY_HISTORY_MONTHS - 1, -1, -1)]
        buckets = {(m.year, m.month): Bucket(m.strftime("%b %Y")) for m in months}

        span_start = datetime.combine(months[0], datetime.min.time())
        span_end = datetime.combine(add_months(last, 1), datetime.min.time())
        for tx in self._sales.list_transactions(start=span_start, end=span_end, payment_status=COMPLETED):
            buckets[(tx.transaction_date.year, tx.transaction_date.month)].add(tx)

        return [{"month": b.label, "sales": money(b.sales), "orders": b.orders} for b in buckets.values()]


class SalesRecordsService:
    """Paged, filterable transaction history."""

    def __init__(self, sales: SalesRepository, *, clock: Callable[[], datetime] = now_local):
        self._sales = sales
        self._clock = clock

    def search(self, filters: RecordFilters, *, page: int = 1, per_page: int = DEFAULT_PAGE_SIZE) -> dict:
        if filters.date_from and filters.date_to and filters.date_to < filters.date_from:
            raise ValidationError("End date must be on or after the start date", {"date_to": "Must not be before start"})

        per_page = min(max(int(per_page or DEFAULT_PAGE_SIZE), 1), MAX_PAGE_SIZE)
        page = max(int(page or 1), 1)

        rows, total = self._sales.search_transactions(filters, offset=(page - 1) * per_page, limit=per_page)
        revenue = self._sales.sum_transactions(filters)

        today = self._clock().date()
        today_filters = RecordFilters(
            date_from=today,
            date_to=today,
            branch_id=filters.branch_id,
            cashier_id=filters.cashier_id,
            payment_method=filters.payment_method,
            payment_status=filters.payment_status,
            search=filters.search,
        )

        return {
            "rows": [t.to_view() for t in rows],
            "pagination": {
                "page": page,
                "per_page": per_page,
                "total": total,
                "total_pages": max(math.ceil(total / per_page), 1),
            },
            "totals": {
                "records": total,
                "revenue": money(revenue),
                "today_sales": money(self._sales.sum_transactions(today_filters)),
                "average_ticket": average_amount(to_decimal(revenue), total),
            },
        }

    def export_rows(self, filters: RecordFilters) -> list[dict]:
        rows, _ = self._sales.search_transactions(filters, offset=0, limit=EXPORT_ROW_LIMIT)
        return [self._export_row(t) for t in rows]

    @staticmethod
    def _export_row(t: Transaction) -> dict:
        return {
            "Transaction": t.transaction_number,
            "Date": t.transaction_date.strftime("%Y-%m-%d"),
            "Time": t.transaction_date.strftime("%H:%M"),
            "Customer": t.customer_label,
            "Items": t.item_count,
            "Total": float(t.total_amount),
            "Payment Method": t.payment_method or "",
            "Status": (t.payment_status or "").title(),
            "Cashier": t.cashier_name or "",
            "Branch": t.branch_name or "",
        }
