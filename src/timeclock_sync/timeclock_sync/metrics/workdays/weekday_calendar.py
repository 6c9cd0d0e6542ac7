from __future__ import annotations

from datetime import date

from .base import WorkingDayCalendar


class WeekdayCalendar(WorkingDayCalendar):
    """Standard rule: Monday to Friday, no holiday calendar."""

    def is_working_day(self, day: date) -> bool:
        return day.weekday() < 5
