from __future__ import annotations

from datetime import datetime

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Clock-in after the grace period; the note records by how much."""

    def decide_clock_in(self, *, now: datetime, workday_start: datetime) -> StatusDecision:
        minutes = int((now - workday_start).total_seconds() // 60)
        return StatusDecision(status=AttendanceStatus.LATE, note=f"Late by {minutes} min")
