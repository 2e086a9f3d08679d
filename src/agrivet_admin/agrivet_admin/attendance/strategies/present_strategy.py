from __future__ import annotations

from datetime import datetime

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class PresentStrategy(AttendanceStrategy):
    """Clock-in within the grace period."""

    def decide_clock_in(self, *, now: datetime, workday_start: datetime) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT)
