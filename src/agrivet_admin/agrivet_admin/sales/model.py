from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

WALK_IN_CUSTOMER = "Walk-in Customer"


@dataclass(frozen=True)
class Transaction:
    transaction_id: int
    transaction_number: str
    transaction_date: datetime
    total_amount: Decimal
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    cashier_id: Optional[int] = None
    cashier_name: Optional[str] = None
    branch_id: Optional[int] = None
    branch_name: Optional[str] = None
    subtotal: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    payment_method: Optional[str] = None
    payment_status: str = "completed"
    item_count: int = 0

    @property
    def customer_label(self) -> str:
        if not self.customer_id:
            return WALK_IN_CUSTOMER
        return self.customer_name or "Customer"

    def to_view(self) -> dict:
        return {
            "transaction_id": self.transaction_id,
            "transaction_number": self.transaction_number,
            "transaction_date": self.transaction_date,
            "customer": self.customer_label,
            "customer_id": self.customer_id,
            "cashier": self.cashier_name or "N/A",
            "branch": self.branch_name or "N/A",
            "items": self.item_count,
            "subtotal": self.subtotal,
            "tax_amount": self.tax_amount,
            "discount_amount": self.discount_amount,
            "total_amount": self.total_amount,
            "payment_method": self.payment_method or "N/A",
            "payment_status": self.payment_status,
        }


@dataclass(frozen=True)
class TransactionItem:
    item_id: int
    transaction_id: int
    product_id: int
    product_name: str
    quantity: Decimal
    unit_price: Decimal
    category_name: Optional[str] = None
    discount_amount: Decimal = Decimal("0")
    line_total: Optional[Decimal] = None
    unit_cost: Optional[Decimal] = None

    @property
    def revenue(self) -> Decimal:
        if self.line_total is not None:
            return self.line_total
        return self.unit_price * self.quantity - (self.discount_amount or Decimal("0"))


@dataclass(frozen=True)
class ProductRef:
    product_id: int
    sku: str
    name: str
    unit_price: Decimal
    cost_price: Decimal = Decimal("0")
    stock_quantity: Decimal = Decimal("0")
    category_name: Optional[str] = None


@dataclass(frozen=True)
class RecordFilters:
    """Filters for the sales records screen; ``None`` means "any"."""

    date_from: Optional[date] = None
    date_to: Optional[date] = None
    branch_id: Optional[int] = None
    cashier_id: Optional[int] = None
    payment_method: Optional[str] = None
    payment_status: Optional[str] = None
    search: Optional[str] = None
