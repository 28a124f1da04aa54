"""Injectable calendar clock.

Services receive a ``Clock`` instead of calling ``date.today()`` so that
"today" is computed in the configured business timezone and tests can pin it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime
from zoneinfo import ZoneInfo

from app.core.config import get_settings


class Clock(ABC):
    """Source of the current calendar day."""

    @abstractmethod
    def today(self) -> date:
        """Current calendar day in the business timezone."""


class SystemClock(Clock):
    """Wall clock evaluated in a fixed timezone."""

    def __init__(self, timezone_name: str) -> None:
        self.timezone = ZoneInfo(timezone_name)

    def today(self) -> date:
        return datetime.now(self.timezone).date()


class FixedClock(Clock):
    """Clock pinned to one day."""

    def __init__(self, day: date) -> None:
        self.day = day

    def today(self) -> date:
        return self.day


def get_clock() -> Clock:
    """FastAPI dependency returning the production clock."""

    return SystemClock(get_settings().business_timezone)
