from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from ..model import WorkedHours


class HoursCalculator(ABC):
    """Calculator interface (Strategy Pattern for worked hours)."""

    @abstractmethod
    def worked(self, time_in: datetime, time_out: datetime) -> WorkedHours:
        raise NotImplementedError
