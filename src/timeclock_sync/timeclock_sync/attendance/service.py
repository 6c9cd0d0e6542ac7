from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..common.validators import require_date_range, require_device_ip, require_non_empty
from ..sync.repository import WatermarkRepository
from .model import AttendanceEvent, EventFilter, SyncStats
from .repository import AttendanceRepository


class AttendanceService:
    """Read API over stored events. Never touches a device."""

    def __init__(self, events: AttendanceRepository, watermarks: WatermarkRepository):
        self._events = events
        self._watermarks = watermarks

    def get_events(
        self,
        *,
        company_id: str,
        start_date: date,
        end_date: date,
        device_ip: Optional[str] = None,
        employee_id: Optional[str] = None,
    ) -> Sequence[AttendanceEvent]:
        start_date, end_date = require_date_range(start_date, end_date)
        flt = EventFilter(
            company_id=require_non_empty(company_id, "company_id"),
            start_date=start_date,
            end_date=end_date,
            device_ip=require_device_ip(device_ip) if device_ip else None,
            employee_id=str(employee_id).strip() if employee_id else None,
        )
        events = list(self._events.get_events(flt))
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_last_sync(self, device_ip: str) -> Optional[datetime]:
        return self._watermarks.get(require_device_ip(device_ip))

    def get_sync_stats(self, *, company_id: str, device_ip: Optional[str] = None) -> SyncStats:
        return self._events.get_sync_stats(
            company_id=require_non_empty(company_id, "company_id"),
            device_ip=require_device_ip(device_ip) if device_ip else None,
        )
