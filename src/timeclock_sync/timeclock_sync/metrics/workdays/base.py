from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from ...common.datetime_utils import iter_dates


class WorkingDayCalendar(ABC):
    """Calendar interface (Strategy Pattern for which days count as working days)."""

    @abstractmethod
    def is_working_day(self, day: date) -> bool:
        raise NotImplementedError

    def working_days(self, start: date, end: date) -> list[date]:
        if start > end:
            return []
        return [d for d in iter_dates(start, end) if self.is_working_day(d)]
