from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

Number = Union[int, float, Decimal]

_CENT = Decimal("0.01")


def to_decimal(value: Optional[Number]) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value: Optional[Number]) -> Decimal:
    return to_decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP)


def percent_change(current: Optional[Number], previous: Optional[Number]) -> float:
    """Growth of current over previous in percent; 0 when there is no baseline."""
    cur = to_decimal(current)
    prev = to_decimal(previous)
    if prev <= 0:
        return 0.0
    return round(float((cur - prev) / prev * 100), 1)


def share(part: Optional[Number], whole: Optional[Number]) -> float:
    total = to_decimal(whole)
    if total <= 0:
        return 0.0
    return round(float(to_decimal(part) / total * 100), 1)


def full_name(first: Optional[str], last: Optional[str]) -> str:
    return " ".join(p for p in ((first or "").strip(), (last or "").strip()) if p)
