from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping, Optional

from ..core.enums import StateCode


@dataclass(frozen=True)
class AttendanceEvent:
    """One punch as stored. Never updated once written."""

    unique_key: str
    device_ip: str
    employee_id: str
    timestamp: datetime
    state_code: StateCode
    date: date
    company_id: str
    synced_at: datetime
    verify_mode: Optional[int] = None
    raw_payload: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "unique_key": self.unique_key,
            "device_ip": self.device_ip,
            "employee_id": self.employee_id,
            "timestamp": self.timestamp.isoformat(),
            "state_code": self.state_code.value,
            "date": self.date.isoformat(),
            "company_id": self.company_id,
            "verify_mode": self.verify_mode,
            "synced_at": self.synced_at.isoformat(),
        }


@dataclass(frozen=True)
class EventFilter:
    company_id: str
    start_date: date
    end_date: date
    device_ip: Optional[str] = None
    employee_id: Optional[str] = None


@dataclass(frozen=True)
class IngestResult:
    """Counts for one ingest call. Duplicates are expected, not errors."""

    stored_count: int = 0
    duplicate_count: int = 0
    error_count: int = 0
    # Records lost to a database failure; the window must not be marked synced.
    storage_failures: int = 0

    def merge(self, other: "IngestResult") -> "IngestResult":
        return IngestResult(
            stored_count=self.stored_count + other.stored_count,
            duplicate_count=self.duplicate_count + other.duplicate_count,
            error_count=self.error_count + other.error_count,
            storage_failures=self.storage_failures + other.storage_failures,
        )

    def to_dict(self) -> dict:
        return {
            "stored_count": self.stored_count,
            "duplicate_count": self.duplicate_count,
            "error_count": self.error_count,
        }


@dataclass(frozen=True)
class SyncStats:
    company_id: str
    device_ip: Optional[str]
    total_events: int
    oldest_event: Optional[datetime]
    newest_event: Optional[datetime]
    last_synced_at: Optional[datetime]

    def to_dict(self) -> dict:
        return {
            "company_id": self.company_id,
            "device_ip": self.device_ip,
            "total_events": self.total_events,
            "oldest_event": self.oldest_event.isoformat() if self.oldest_event else None,
            "newest_event": self.newest_event.isoformat() if self.newest_event else None,
            "last_synced_at": self.last_synced_at.isoformat() if self.last_synced_at else None,
        }
