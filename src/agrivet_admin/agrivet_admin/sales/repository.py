from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Protocol, Sequence, Tuple

from .model import ProductRef, RecordFilters, Transaction, TransactionItem


class SalesRepository(Protocol):
    def list_transactions(
        self, *, start: datetime, end: datetime, payment_status: Optional[str] = None
    ) -> Sequence[Transaction]:
        """Transactions in ``[start, end)``, newest first."""

        raise NotImplementedError

    def list_items(
        self, *, start: datetime, end: datetime, payment_status: Optional[str] = None
    ) -> Sequence[TransactionItem]:
        """Line items of the transactions in ``[start, end)``."""

        raise NotImplementedError

    def list_products(self, *, category: Optional[str] = None) -> Sequence[ProductRef]:
        raise NotImplementedError

    def search_transactions(
        self, filters: RecordFilters, *, offset: int, limit: int
    ) -> Tuple[Sequence[Transaction], int]:
        """One page of matching transactions (newest first) and the total match count."""

        raise NotImplementedError

    def sum_transactions(self, filters: RecordFilters) -> Decimal:
        raise NotImplementedError
