"""Reductions over transactions and line items shared by the sales reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from ..common.formatting import money, percent_change
from .model import Transaction, TransactionItem


@dataclass
class ProductTotals:
    product_id: int
    name: str
    category: Optional[str] = None
    units: Decimal = Decimal("0")
    revenue: Decimal = Decimal("0")
    cost: Decimal = Decimal("0")


@dataclass
class Bucket:
    """Sales accumulated over one slice of time (an hour, a segment, a month)."""

    label: str
    sales: Decimal = Decimal("0")
    orders: int = 0
    customers: set = field(default_factory=set)

    def add(self, tx: Transaction) -> None:
        self.sales += tx.total_amount
        self.orders += 1
        if tx.customer_id:
            self.customers.add(tx.customer_id)


def total_sales(transactions: Iterable[Transaction]) -> Decimal:
    return sum((t.total_amount for t in transactions), Decimal("0"))


def distinct_customers(transactions: Iterable[Transaction]) -> int:
    return len({t.customer_id for t in transactions if t.customer_id})


def average_amount(total: Decimal, count: int) -> Decimal:
    if count <= 0:
        return money(0)
    return money(total / count)


def change_card(current, previous) -> dict:
    change = percent_change(current, previous)
    return {"value": current, "change": change, "is_positive": change >= 0}


def rollup_products(items: Iterable[TransactionItem]) -> Dict[int, ProductTotals]:
    out: Dict[int, ProductTotals] = {}
    for item in items:
        p = out.get(item.product_id)
        if p is None:
            p = out[item.product_id] = ProductTotals(item.product_id, item.product_name, item.category_name)
        p.units += item.quantity
        p.revenue += item.revenue
        if item.unit_cost is not None:
            p.cost += item.unit_cost * item.quantity
    return out


def top_by_revenue(totals: Iterable[ProductTotals], limit: int) -> List[ProductTotals]:
    return sorted(totals, key=lambda p: (-p.revenue, p.name))[:limit]


def margin_percent(revenue: Decimal, cost: Decimal) -> float:
    if revenue <= 0:
        return 0.0
    return round(float((revenue - cost) / revenue * 100), 1)


def count_by(values: Sequence[str]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for v in values:
        counts[v] = counts.get(v, 0) + 1
    return counts
