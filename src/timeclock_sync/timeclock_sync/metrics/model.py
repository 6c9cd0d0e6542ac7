from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..settings.model import CutoffPolicy


@dataclass(frozen=True)
class LatenessResult:
    employee_id: str
    date: date
    present: bool
    is_late: bool
    late_minutes: int
    first_event: Optional[datetime]
    cutoff: CutoffPolicy

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "date": self.date.isoformat(),
            "present": self.present,
            "is_late": self.is_late,
            "late_minutes": self.late_minutes,
            "first_event": self.first_event.isoformat() if self.first_event else None,
            "cutoff": self.cutoff.to_dict(),
        }


@dataclass(frozen=True)
class AttendanceRate:
    employee_id: str
    start_date: date
    end_date: date
    present_days: int
    total_working_days: int
    rate: float

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "present_days": self.present_days,
            "total_working_days": self.total_working_days,
            "rate": self.rate,
        }


@dataclass(frozen=True)
class EmployeeSummary:
    """Read-model for the reporting/leaderboard layer."""

    employee_id: str
    start_date: date
    end_date: date
    total_working_days: int
    present_days: int
    absent_days: int
    late_days: int
    total_late_minutes: int
    average_late_minutes: int
    attendance_rate: float
    full_name: Optional[str] = None
    department: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "full_name": self.full_name,
            "department": self.department,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "total_working_days": self.total_working_days,
            "present_days": self.present_days,
            "absent_days": self.absent_days,
            "late_days": self.late_days,
            "total_late_minutes": self.total_late_minutes,
            "average_late_minutes": self.average_late_minutes,
            "attendance_rate": self.attendance_rate,
        }
