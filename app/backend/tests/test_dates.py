from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from app.core.clock import FixedClock, SystemClock
from app.core.dates import parse_day, parse_optional_day, parse_range, validate_window
from app.core.errors import ValidationError
from app.models.entities import WorkStatus
from app.services.common import parse_hours, parse_optional_hours, parse_status


def test_parse_day_accepts_strict_calendar_days() -> None:
    assert parse_day("2024-02-29") == date(2024, 2, 29)
    assert parse_optional_day("  ") is None
    assert parse_optional_day(None) is None


@pytest.mark.parametrize("value", ["2024-2-01", "01-02-2024", "2024/02/01", "20240201", "2024-02-01T00:00"])
def test_parse_day_rejects_other_shapes(value: str) -> None:
    with pytest.raises(ValidationError) as exc_info:
        parse_day(value)
    assert exc_info.value.status_code == 422
    assert "YYYY-MM-DD" in exc_info.value.detail


def test_parse_day_rejects_impossible_days_and_blank() -> None:
    with pytest.raises(ValidationError, match="valid calendar day"):
        parse_day("2023-02-29")
    with pytest.raises(ValidationError, match="is required"):
        parse_day("", "entry_date")


def test_validate_window_allows_open_or_equal_ends() -> None:
    validate_window(None, date(2024, 1, 1))
    validate_window(date(2024, 1, 1), None)
    validate_window(date(2024, 1, 1), date(2024, 1, 1))

    with pytest.raises(ValidationError, match="planned window"):
        validate_window(date(2024, 1, 2), date(2024, 1, 1), "planned window")


def test_parse_range_requires_ordered_bounds() -> None:
    assert parse_range("2024-01-01", "2024-01-31") == (date(2024, 1, 1), date(2024, 1, 31))

    with pytest.raises(ValidationError, match="greater than or equal"):
        parse_range("2024-02-01", "2024-01-31")
    with pytest.raises(ValidationError, match="start_date is required"):
        parse_range(None, "2024-01-31")


def test_parse_hours_rules() -> None:
    assert parse_hours("2.5") == Decimal("2.50")
    assert parse_hours(0) == Decimal("0.00")
    assert parse_optional_hours("") is None
    assert parse_optional_hours(None) is None

    for bad in ("abc", "NaN", "Infinity", True):
        with pytest.raises(ValidationError):
            parse_hours(bad)
    with pytest.raises(ValidationError, match="negative"):
        parse_hours(Decimal("-0.5"))


def test_parse_hours_rejects_values_beyond_column_capacity() -> None:
    assert parse_hours("99999999.99") == Decimal("99999999.99")
    for too_large in (1e30, "1e9", "99999999.995"):
        with pytest.raises(ValidationError, match="at most 99999999.99"):
            parse_hours(too_large)


def test_status_labels_match_case_insensitively() -> None:
    assert WorkStatus.parse("on hold") is WorkStatus.ON_HOLD
    assert WorkStatus.parse("  COMPLETED ") is WorkStatus.COMPLETED
    assert WorkStatus.parse("archived") is None
    assert parse_status("pending") is WorkStatus.PENDING

    with pytest.raises(ValidationError, match="status must be one of"):
        parse_status("archived")


def test_clocks() -> None:
    assert FixedClock(date(2024, 3, 15)).today() == date(2024, 3, 15)
    assert isinstance(SystemClock("Asia/Kolkata").today(), date)
