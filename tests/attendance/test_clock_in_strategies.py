from datetime import datetime

from src.agrivet_admin.agrivet_admin.attendance.factory import AttendanceStrategyFactory
from src.agrivet_admin.agrivet_admin.attendance.strategies.late_strategy import LateStrategy
from src.agrivet_admin.agrivet_admin.attendance.strategies.present_strategy import PresentStrategy
from src.agrivet_admin.agrivet_admin.core.enums import AttendanceStatus

WORKDAY_START = datetime(2026, 3, 2, 8, 0)


def test_factory_clock_in_present_within_grace():
    now = datetime(2026, 3, 2, 8, 15, 0)

    strategy = AttendanceStrategyFactory().for_clock_in(now=now, workday_start=WORKDAY_START, grace_minutes=15)

    assert isinstance(strategy, PresentStrategy)
    assert strategy.decide_clock_in(now=now, workday_start=WORKDAY_START).status == AttendanceStatus.PRESENT


def test_factory_clock_in_early_is_present():
    now = datetime(2026, 3, 2, 7, 30, 0)

    strategy = AttendanceStrategyFactory().for_clock_in(now=now, workday_start=WORKDAY_START, grace_minutes=15)

    assert isinstance(strategy, PresentStrategy)


def test_factory_clock_in_late_after_grace():
    now = datetime(2026, 3, 2, 8, 40, 0)

    strategy = AttendanceStrategyFactory().for_clock_in(now=now, workday_start=WORKDAY_START, grace_minutes=15)
    decision = strategy.decide_clock_in(now=now, workday_start=WORKDAY_START)

    assert isinstance(strategy, LateStrategy)
    assert decision.status == AttendanceStatus.LATE
    assert decision.note == "Late by 40 min"
