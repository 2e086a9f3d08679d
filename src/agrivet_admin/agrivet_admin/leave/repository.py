from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import LeaveStatus, LeaveType
from .model import LeaveRequest, LeaveRowView


class LeaveRepository(Protocol):
    def create(
        self,
        *,
        staff_id: int,
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        days_requested: int,
        reason: str,
        emergency_contact: Optional[str],
    ) -> int:
        raise NotImplementedError

    def get(self, request_id: int) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def list_rows(self, *, start: date, end: date) -> Sequence[LeaveRowView]:
        """Requests whose start date is in ``[start, end)``, newest first."""

        raise NotImplementedError

    def decide(
        self,
        *,
        request_id: int,
        status: LeaveStatus,
        decided_by: Optional[int],
        decided_at: Optional[datetime],
        admin_note: Optional[str],
    ) -> bool:
        """Move a pending request to ``status``; False when it is not pending."""

        raise NotImplementedError

    def reopen(self, request_id: int) -> bool:
        """Put an approved request back to pending and clear the decision."""

        raise NotImplementedError

    def count_pending(self) -> int:
        raise NotImplementedError
