from datetime import datetime

from src.agrivet_admin.agrivet_admin.attendance.calculator.standard_calculator import StandardHoursCalculator


def test_standard_calculator_splits_overtime():
    worked = StandardHoursCalculator().worked(datetime(2026, 3, 2, 8, 0), datetime(2026, 3, 2, 17, 30))

    assert worked.total_hours == 9.5
    assert worked.overtime_hours == 1.5


def test_short_day_has_no_overtime_and_rounds_to_two_decimals():
    worked = StandardHoursCalculator().worked(datetime(2026, 3, 2, 8, 0), datetime(2026, 3, 2, 12, 20))

    assert worked.total_hours == 4.33
    assert worked.overtime_hours == 0.0


def test_clock_out_before_clock_in_never_goes_negative():
    worked = StandardHoursCalculator(standard_hours=6).worked(datetime(2026, 3, 2, 9, 0), datetime(2026, 3, 2, 8, 0))

    assert worked.total_hours == 0.0
    assert worked.overtime_hours == 0.0
