from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence

from ..attendance.model import AttendanceEvent, EventFilter
from ..attendance.repository import AttendanceRepository
from ..common.validators import require_date_range, require_non_empty
from ..directory.model import Employee
from ..directory.repository import EmployeeRepository
from ..settings.model import CutoffPolicy
from ..settings.service import SettingsService
from .model import AttendanceRate, EmployeeSummary, LatenessResult
from .workdays.base import WorkingDayCalendar
from .workdays.weekday_calendar import WeekdayCalendar


def _round_half_up(value: Decimal, places: str = "0.1") -> Decimal:
    return value.quantize(Decimal(places), rounding=ROUND_HALF_UP)


def attendance_rate(present_days: int, total_working_days: int) -> float:
    if total_working_days <= 0:
        return 0.0
    return float(_round_half_up(Decimal(present_days) * 100 / Decimal(total_working_days)))


def late_minutes(first_event: datetime, cutoff: datetime) -> int:
    """Whole minutes past the cutoff; 0 when on time. Exactly at the cutoff is on time."""
    if first_event <= cutoff:
        return 0
    return int((first_event - cutoff).total_seconds() // 60)


def first_event_per_day(events: Iterable[AttendanceEvent]) -> dict[date, datetime]:
    firsts: dict[date, datetime] = {}
    for e in events:
        current = firsts.get(e.date)
        if current is None or e.timestamp < current:
            firsts[e.date] = e.timestamp
    return firsts


class MetricsEngine:
    """Presence, lateness and attendance rate derived from stored events on demand."""

    def __init__(
        self,
        events: AttendanceRepository,
        settings: SettingsService,
        directory: EmployeeRepository | None = None,
        *,
        calendar: WorkingDayCalendar | None = None,
    ):
        self._events = events
        self._settings = settings
        self._directory = directory
        self._calendar = calendar or WeekdayCalendar()

    def working_days(self, start_date: date, end_date: date) -> list[date]:
        start_date, end_date = require_date_range(start_date, end_date)
        return self._calendar.working_days(start_date, end_date)

    def get_lateness(self, *, company_id: str, employee_id: str, day: date) -> LatenessResult:
        employee_id = require_non_empty(employee_id, "employee_id")
        policy = self._settings.get_cutoff_policy()
        events = self._load(company_id, day, day, employee_id=employee_id)
        first = first_event_per_day(events).get(day)

        if first is None:
            return LatenessResult(
                employee_id=employee_id,
                date=day,
                present=False,
                is_late=False,
                late_minutes=0,
                first_event=None,
                cutoff=policy,
            )

        cutoff_at = datetime.combine(day, policy.cutoff_time)
        return LatenessResult(
            employee_id=employee_id,
            date=day,
            present=True,
            is_late=first > cutoff_at,
            late_minutes=late_minutes(first, cutoff_at),
            first_event=first,
            cutoff=policy,
        )

    def get_attendance_rate(
        self,
        *,
        company_id: str,
        employee_id: str,
        start_date: date,
        end_date: date,
    ) -> AttendanceRate:
        employee_id = require_non_empty(employee_id, "employee_id")
        days = self.working_days(start_date, end_date)
        firsts = first_event_per_day(self._load(company_id, start_date, end_date, employee_id=employee_id))
        present = sum(1 for d in days if d in firsts)
        return AttendanceRate(
            employee_id=employee_id,
            start_date=start_date,
            end_date=end_date,
            present_days=present,
            total_working_days=len(days),
            rate=attendance_rate(present, len(days)),
        )

    def employee_summary(
        self,
        *,
        company_id: str,
        employee_id: str,
        start_date: date,
        end_date: date,
    ) -> EmployeeSummary:
        employee_id = require_non_empty(employee_id, "employee_id")
        days = self.working_days(start_date, end_date)
        events = self._load(company_id, start_date, end_date, employee_id=employee_id)
        employee = self._directory.get(company_id=company_id, employee_id=employee_id) if self._directory else None
        return self._summarize(
            employee_id=employee_id,
            employee=employee,
            events=events,
            days=days,
            policy=self._settings.get_cutoff_policy(),
            start_date=start_date,
            end_date=end_date,
        )

    def company_summary(self, *, company_id: str, start_date: date, end_date: date) -> list[EmployeeSummary]:
        """Every active directory employee, ranked by rate then by total late minutes."""
        if self._directory is None:
            raise RuntimeError("MetricsEngine was built without an employee directory")

        days = self.working_days(start_date, end_date)
        policy = self._settings.get_cutoff_policy()
        by_employee: dict[str, list[AttendanceEvent]] = defaultdict(list)
        for e in self._load(company_id, start_date, end_date):
            by_employee[e.employee_id].append(e)

        summaries = [
            self._summarize(
                employee_id=emp.employee_id,
                employee=emp,
                events=by_employee.get(emp.employee_id, []),
                days=days,
                policy=policy,
                start_date=start_date,
                end_date=end_date,
            )
            for emp in self._directory.list_by_company(company_id, active_only=True)
        ]
        summaries.sort(key=lambda s: (-s.attendance_rate, s.total_late_minutes, s.employee_id))
        return summaries

    def _summarize(
        self,
        *,
        employee_id: str,
        employee: Optional[Employee],
        events: Sequence[AttendanceEvent],
        days: Sequence[date],
        policy: CutoffPolicy,
        start_date: date,
        end_date: date,
    ) -> EmployeeSummary:
        firsts = first_event_per_day(events)
        present = 0
        late_days = 0
        total_late = 0
        for d in days:
            first = firsts.get(d)
            if first is None:
                continue
            present += 1
            minutes = late_minutes(first, datetime.combine(d, policy.cutoff_time))
            if first > datetime.combine(d, policy.cutoff_time):
                late_days += 1
                total_late += minutes

        average = int(_round_half_up(Decimal(total_late) / late_days, "1")) if late_days else 0
        return EmployeeSummary(
            employee_id=employee_id,
            full_name=employee.full_name if employee else None,
            department=employee.department if employee else None,
            start_date=start_date,
            end_date=end_date,
            total_working_days=len(days),
            present_days=present,
            absent_days=len(days) - present,
            late_days=late_days,
            total_late_minutes=total_late,
            average_late_minutes=average,
            attendance_rate=attendance_rate(present, len(days)),
        )

    def _load(
        self,
        company_id: str,
        start_date: date,
        end_date: date,
        *,
        employee_id: Optional[str] = None,
    ) -> Sequence[AttendanceEvent]:
        return self._events.get_events(
            EventFilter(
                company_id=require_non_empty(company_id, "company_id"),
                start_date=start_date,
                end_date=end_date,
                employee_id=employee_id,
            )
        )
