"""Reporting windows for the sales screens.

Every window is half-open: ``start <= t < end``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Tuple

from ..common.datetime_utils import add_months
from ..core.constants import TREND_SEGMENTS
from ..core.enums import SalesPeriod
from ..core.exceptions import ValidationError

SEGMENT_HOURS = 4


@dataclass(frozen=True)
class Window:
    start: datetime
    end: datetime
    label: str = ""

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    @property
    def days(self) -> int:
        return max((self.end - self.start).days, 1)


@dataclass(frozen=True)
class PeriodRange:
    period: SalesPeriod
    current: Window
    previous: Window
    segments: Tuple[Window, ...]

    @property
    def trend_span(self) -> Window:
        return Window(self.segments[0].start, self.segments[-1].end)


def _midnight(d: date) -> datetime:
    return datetime.combine(d, time.min)


def parse_period(value) -> SalesPeriod:
    try:
        return SalesPeriod((value or SalesPeriod.MONTH.value).strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown period: {value!r}")


def previous_window(window: Window) -> Window:
    """The window of equal length that ends where ``window`` starts."""
    length = window.end - window.start
    return Window(window.start - length, window.start)


def period_range(period: SalesPeriod, now: datetime) -> PeriodRange:
    today = now.date()

    if period == SalesPeriod.TODAY:
        start = _midnight(today)
        current = Window(start, start + timedelta(days=1), "Today")
        previous = Window(start - timedelta(days=1), start, "Yesterday")

        block_end = start + timedelta(hours=(now.hour // SEGMENT_HOURS + 1) * SEGMENT_HOURS)
        segments = []
        for i in range(TREND_SEGMENTS, 0, -1):
            seg_end = block_end - timedelta(hours=SEGMENT_HOURS * (i - 1))
            seg_start = seg_end - timedelta(hours=SEGMENT_HOURS)
            segments.append(Window(seg_start, seg_end, seg_start.strftime("%H:00")))

    elif period == SalesPeriod.WEEK:
        end = _midnight(today + timedelta(days=1))
        current = Window(end - timedelta(days=7), end, "Last 7 days")
        previous = Window(current.start - timedelta(days=7), current.start, "Previous 7 days")

        segments = []
        for i in range(TREND_SEGMENTS - 1, -1, -1):
            day = today - timedelta(days=i)
            segments.append(Window(_midnight(day), _midnight(day + timedelta(days=1)), day.strftime("%a %d")))

    elif period == SalesPeriod.MONTH:
        first = today.replace(day=1)
        current = Window(_midnight(first), _midnight(add_months(first, 1)), first.strftime("%B %Y"))
        prev_first = add_months(first, -1)
        previous = Window(_midnight(prev_first), current.start, prev_first.strftime("%B %Y"))

        segments = []
        for i in range(TREND_SEGMENTS - 1, -1, -1):
            month = add_months(first, -i)
            segments.append(Window(_midnight(month), _midnight(add_months(month, 1)), month.strftime("%b %Y")))

    elif period == SalesPeriod.YEAR:
        current = Window(_midnight(date(today.year, 1, 1)), _midnight(date(today.year + 1, 1, 1)), str(today.year))
        previous = Window(_midnight(date(today.year - 1, 1, 1)), current.start, str(today.year - 1))

        segments = []
        for i in range(TREND_SEGMENTS - 1, -1, -1):
            year = today.year - i
            segments.append(Window(_midnight(date(year, 1, 1)), _midnight(date(year + 1, 1, 1)), str(year)))

    else:
        raise ValidationError(f"Unknown period: {period!r}")

    return PeriodRange(period=period, current=current, previous=previous, segments=tuple(segments))
