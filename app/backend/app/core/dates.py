"""Calendar-day parsing and window validation helpers."""

from __future__ import annotations

import re
from datetime import date

from app.core.errors import ValidationError

DAY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_day(value: str | None, label: str = "date") -> date:
    """Parse a strict ``YYYY-MM-DD`` string into a calendar day."""

    if value is None or not str(value).strip():
        raise ValidationError(f"{label} is required.")
    text = str(value)
    if not DAY_PATTERN.match(text):
        raise ValidationError(f"{label} must be YYYY-MM-DD.")
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise ValidationError(f"{label} is not a valid calendar day.") from exc


def parse_optional_day(value: str | None, label: str = "date") -> date | None:
    """Parse a day that may be omitted; blank strings count as omitted."""

    if value is None or not str(value).strip():
        return None
    return parse_day(value, label)


def validate_window(start: date | None, end: date | None, label: str = "date range") -> None:
    """Reject a window whose both ends are known and start is after end."""

    if start is not None and end is not None and start > end:
        raise ValidationError(f"{label}: start cannot be after end.")


def parse_range(start_value: str | None, end_value: str | None) -> tuple[date, date]:
    """Parse an inclusive reporting range given as two day strings."""

    start = parse_day(start_value, "start_date")
    end = parse_day(end_value, "end_date")
    if end < start:
        raise ValidationError("end_date must be greater than or equal to start_date.")
    return start, end


def format_day(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None
