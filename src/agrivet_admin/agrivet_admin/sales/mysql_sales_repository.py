from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence, Tuple

from ..common.datetime_utils import day_bounds
from ..common.formatting import to_decimal
from ..database.connection import DatabaseConnection
from ..database.mysql_base import WhereBuilder, db_cursor, fetchall, fetchone
from .model import ProductRef, RecordFilters, Transaction, TransactionItem
from .repository import SalesRepository

_TX_SELECT = """
    SELECT t.transaction_id, t.transaction_number, t.transaction_date, t.customer_id, t.cashier_id,
           t.branch_id, t.subtotal, t.tax_amount, t.discount_amount, t.total_amount,
           t.payment_method, t.payment_status,
           CONCAT_WS(' ', c.first_name, c.last_name) AS customer_name,
           CONCAT_WS(' ', s.first_name, s.last_name) AS cashier_name,
           b.name AS branch_name,
           (SELECT COALESCE(SUM(i.quantity), 0) FROM pos_transaction_items i
             WHERE i.transaction_id = t.transaction_id) AS item_count
    FROM pos_transactions t
    LEFT JOIN customers c ON c.customer_id = t.customer_id
    LEFT JOIN staff s ON s.staff_id = t.cashier_id
    LEFT JOIN branches b ON b.branch_id = t.branch_id
"""

_TX_FROM = """
    FROM pos_transactions t
    LEFT JOIN customers c ON c.customer_id = t.customer_id
    LEFT JOIN staff s ON s.staff_id = t.cashier_id
"""


def _to_transaction(r: dict) -> Transaction:
    return Transaction(
        transaction_id=int(r["transaction_id"]),
        transaction_number=r.get("transaction_number") or str(r["transaction_id"]),
        transaction_date=r["transaction_date"],
        total_amount=to_decimal(r.get("total_amount")),
        customer_id=r.get("customer_id"),
        customer_name=r.get("customer_name") or None,
        cashier_id=r.get("cashier_id"),
        cashier_name=r.get("cashier_name") or None,
        branch_id=r.get("branch_id"),
        branch_name=r.get("branch_name"),
        subtotal=to_decimal(r.get("subtotal")),
        tax_amount=to_decimal(r.get("tax_amount")),
        discount_amount=to_decimal(r.get("discount_amount")),
        payment_method=r.get("payment_method"),
        payment_status=r.get("payment_status") or "completed",
        item_count=int(r.get("item_count") or 0),
    )


def _to_item(r: dict) -> TransactionItem:
    return TransactionItem(
        item_id=int(r["item_id"]),
        transaction_id=int(r["transaction_id"]),
        product_id=int(r["product_id"]),
        product_name=r.get("product_name") or "Unknown product",
        quantity=to_decimal(r.get("quantity")),
        unit_price=to_decimal(r.get("unit_price")),
        category_name=r.get("category_name"),
        discount_amount=to_decimal(r.get("discount_amount")),
        line_total=None if r.get("line_total") is None else to_decimal(r["line_total"]),
        unit_cost=None if r.get("unit_cost") is None else to_decimal(r["unit_cost"]),
    )


def _record_where(filters: RecordFilters) -> WhereBuilder:
    where = WhereBuilder()
    if filters.date_from:
        where.add("t.transaction_date >= %s", day_bounds(filters.date_from)[0])
    if filters.date_to:
        where.add("t.transaction_date < %s", day_bounds(filters.date_to)[1])
    where.add_if(filters.branch_id, "t.branch_id=%s")
    where.add_if(filters.cashier_id, "t.cashier_id=%s")
    where.add_if(filters.payment_method, "t.payment_method=%s")
    where.add_if(filters.payment_status, "t.payment_status=%s")
    if filters.search:
        like = f"%{filters.search.strip()}%"
        where.add(
            "(t.transaction_number LIKE %s OR CONCAT_WS(' ', c.first_name, c.last_name) LIKE %s"
            " OR CONCAT_WS(' ', s.first_name, s.last_name) LIKE %s)",
            like,
            like,
            like,
        )
    return where


class MySQLSalesRepository(SalesRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_transactions(
        self, *, start: datetime, end: datetime, payment_status: Optional[str] = None
    ) -> Sequence[Transaction]:
        where = WhereBuilder().add("t.transaction_date >= %s AND t.transaction_date < %s", start, end)
        where.add_if(payment_status, "t.payment_status=%s")
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_TX_SELECT} WHERE {where.sql} ORDER BY t.transaction_date DESC, t.transaction_id DESC",
                tuple(where.params),
            )
            return [_to_transaction(r) for r in fetchall(cur)]

    def list_items(
        self, *, start: datetime, end: datetime, payment_status: Optional[str] = None
    ) -> Sequence[TransactionItem]:
        where = WhereBuilder().add("t.transaction_date >= %s AND t.transaction_date < %s", start, end)
        where.add_if(payment_status, "t.payment_status=%s")
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT i.item_id, i.transaction_id, i.product_id, i.quantity, i.unit_price,
                       i.discount_amount, i.line_total, COALESCE(i.unit_cost, p.cost_price) AS unit_cost,
                       p.name AS product_name, cat.name AS category_name
                FROM pos_transaction_items i
                JOIN pos_transactions t ON t.transaction_id = i.transaction_id
                LEFT JOIN products p ON p.product_id = i.product_id
                LEFT JOIN categories cat ON cat.category_id = p.category_id
                WHERE {where.sql}
                """,
                tuple(where.params),
            )
            return [_to_item(r) for r in fetchall(cur)]

    def list_products(self, *, category: Optional[str] = None) -> Sequence[ProductRef]:
        where = WhereBuilder().add("p.is_active=1").add_if(category, "cat.name=%s")
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT p.product_id, p.sku, p.name, p.unit_price, p.cost_price, p.stock_quantity,
                       cat.name AS category_name
                FROM products p
                LEFT JOIN categories cat ON cat.category_id = p.category_id
                WHERE {where.sql}
                ORDER BY p.name
                """,
                tuple(where.params),
            )
            return [
                ProductRef(
                    product_id=int(r["product_id"]),
                    sku=r.get("sku") or "",
                    name=r["name"],
                    unit_price=to_decimal(r.get("unit_price")),
                    cost_price=to_decimal(r.get("cost_price")),
                    stock_quantity=to_decimal(r.get("stock_quantity")),
                    category_name=r.get("category_name"),
                )
                for r in fetchall(cur)
            ]

    def search_transactions(
        self, filters: RecordFilters, *, offset: int, limit: int
    ) -> Tuple[Sequence[Transaction], int]:
        where = _record_where(filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total {_TX_FROM} WHERE {where.sql}", tuple(where.params))
            row = fetchone(cur)
            total = int(row["total"]) if row else 0

            cur.execute(
                f"""
                {_TX_SELECT}
                WHERE {where.sql}
                ORDER BY t.transaction_date DESC, t.transaction_id DESC
                LIMIT %s OFFSET %s
                """,
                (*where.params, int(limit), int(offset)),
            )
            return [_to_transaction(r) for r in fetchall(cur)], total

    def sum_transactions(self, filters: RecordFilters) -> Decimal:
        where = _record_where(filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT COALESCE(SUM(t.total_amount), 0) AS revenue {_TX_FROM} WHERE {where.sql}",
                tuple(where.params),
            )
            row = fetchone(cur)
            return to_decimal(row["revenue"]) if row else Decimal("0")
