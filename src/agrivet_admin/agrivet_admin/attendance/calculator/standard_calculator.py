from __future__ import annotations

from datetime import datetime

from ...core.constants import DEFAULT_STANDARD_WORKDAY_HOURS
from ..model import WorkedHours
from .base import HoursCalculator


class StandardHoursCalculator(HoursCalculator):
    """Standard rule: (out - in) in hours, overtime beyond the standard day, not below 0."""

    def __init__(self, standard_hours: float = DEFAULT_STANDARD_WORKDAY_HOURS):
        self._standard_hours = float(standard_hours)

    def worked(self, time_in: datetime, time_out: datetime) -> WorkedHours:
        total = max((time_out - time_in).total_seconds() / 3600, 0.0)
        overtime = max(total - self._standard_hours, 0.0)
        return WorkedHours(total_hours=round(total, 2), overtime_hours=round(overtime, 2))
