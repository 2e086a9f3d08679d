from __future__ import annotations

from datetime import date, datetime

import pandas as pd
import pytest

from src.agrivet_admin.agrivet_admin.common.datetime_utils import (
    add_months,
    day_bounds,
    parse_iso_datetime,
    parse_month,
)
from src.agrivet_admin.agrivet_admin.common.devices import device_class
from src.agrivet_admin.agrivet_admin.common.exporting import to_csv, to_xlsx
from src.agrivet_admin.agrivet_admin.common.formatting import percent_change, share
from src.agrivet_admin.agrivet_admin.common.validators import is_hex_color, is_http_url, require_email
from src.agrivet_admin.agrivet_admin.core.exceptions import ValidationError


def test_percentages_guard_against_zero_baselines():
    assert percent_change(150, 100) == 50.0
    assert percent_change(10, 0) == 0.0
    assert share(1, 3) == 33.3
    assert share(5, 0) == 0.0


def test_month_and_day_helpers():
    assert parse_month("2026-12") == (date(2026, 12, 1), date(2027, 1, 1))
    assert add_months(date(2026, 3, 31), -3) == date(2025, 12, 1)
    assert day_bounds(date(2026, 3, 1)) == (datetime(2026, 3, 1), datetime(2026, 3, 2))
    assert parse_iso_datetime("2026-03-01T08:00:00Z") == datetime(2026, 3, 1, 8, 0)
    with pytest.raises(ValidationError):
        parse_month("March")


def test_validators():
    assert is_hex_color("#0af") and is_hex_color("#00AAFF")
    assert not is_hex_color("00aaff")
    assert is_http_url("https://agrivet.test/a?b=1")
    assert not is_http_url("javascript:alert(1)")
    assert require_email("  Owner@Shop.Test ") == "owner@shop.test"
    with pytest.raises(ValidationError) as exc:
        require_email("nope")
    assert exc.value.errors == {"email": "Please enter a valid email address"}


def test_device_class():
    assert device_class("Mozilla/5.0 (iPhone; CPU iPhone OS 17_0) Mobile/15E148") == "mobile"
    assert device_class("Mozilla/5.0 (iPad; CPU OS 17_0)") == "tablet"
    assert device_class(None) == "desktop"


def test_csv_keeps_header_for_empty_exports():
    buf = to_csv([], columns=["Employee", "Days"])

    assert buf.getvalue().decode("utf-8-sig").strip() == '"Employee","Days"'


def test_xlsx_round_trips_rows_in_column_order():
    rows = [{"Days": 2, "Employee": "Maria Santos"}]

    df = pd.read_excel(to_xlsx(rows, sheet_name="Leave", columns=["Employee", "Days"]), engine="openpyxl")

    assert list(df.columns) == ["Employee", "Days"]
    assert df.iloc[0]["Employee"] == "Maria Santos"
