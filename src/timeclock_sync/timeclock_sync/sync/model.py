from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping, Optional

from ..attendance.model import IngestResult
from ..common.datetime_utils import parse_iso_date
from ..common.validators import require_date_range, require_positive_days
from ..core.enums import SyncModeKind, WindowStatus
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class SyncMode:
    kind: SyncModeKind
    days: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @classmethod
    def incremental(cls) -> "SyncMode":
        return cls(kind=SyncModeKind.INCREMENTAL)

    @classmethod
    def forced_days(cls, days: int) -> "SyncMode":
        return cls(kind=SyncModeKind.FORCED_DAYS, days=require_positive_days(days))

    @classmethod
    def forced_range(cls, start_date: date, end_date: date) -> "SyncMode":
        start_date, end_date = require_date_range(start_date, end_date)
        return cls(kind=SyncModeKind.FORCED_RANGE, start_date=start_date, end_date=end_date)

    @classmethod
    def from_request(cls, data: Mapping[str, Any] | None) -> "SyncMode":
        """Build a mode from a JSON body such as {"mode": "forced_days", "days": 30}."""
        data = data or {}
        kind = data.get("mode")
        if not kind:
            if data.get("start_date") or data.get("end_date"):
                kind = SyncModeKind.FORCED_RANGE.value
            elif data.get("days") is not None:
                kind = SyncModeKind.FORCED_DAYS.value
            else:
                kind = SyncModeKind.INCREMENTAL.value

        try:
            kind = SyncModeKind(str(kind))
        except ValueError:
            raise ValidationError(f"Unknown sync mode {kind!r}") from None

        if kind == SyncModeKind.FORCED_DAYS:
            return cls.forced_days(data.get("days"))
        if kind == SyncModeKind.FORCED_RANGE:
            if not data.get("start_date") or not data.get("end_date"):
                raise ValidationError("forced_range requires start_date and end_date")
            return cls.forced_range(parse_iso_date(data["start_date"]), parse_iso_date(data["end_date"]))
        return cls.incremental()

    def to_dict(self) -> dict:
        out: dict = {"mode": self.kind.value}
        if self.days is not None:
            out["days"] = self.days
        if self.start_date is not None:
            out["start_date"] = self.start_date.isoformat()
        if self.end_date is not None:
            out["end_date"] = self.end_date.isoformat()
        return out


@dataclass(frozen=True)
class SyncWindow:
    """Half-open interval [start, end)."""

    start: datetime
    end: datetime

    def contains(self, ts: datetime) -> bool:
        return self.start <= ts < self.end

    @property
    def days(self) -> float:
        return (self.end - self.start).total_seconds() / 86400

    def to_dict(self) -> dict:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass(frozen=True)
class WindowResult:
    window: SyncWindow
    status: WindowStatus
    ingest: IngestResult = field(default_factory=IngestResult)
    error: Optional[str] = None
    error_code: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            **self.window.to_dict(),
            "status": self.status.value,
            **self.ingest.to_dict(),
            "error": self.error,
            "error_code": self.error_code,
        }


@dataclass(frozen=True)
class SyncResult:
    success: bool
    device_ip: str
    mode: SyncMode
    synced: int = 0
    duplicates: int = 0
    errors: int = 0
    windows: tuple[WindowResult, ...] = ()
    partial: bool = False
    cancelled: bool = False
    watermark: Optional[datetime] = None
    error_code: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "device_ip": self.device_ip,
            **self.mode.to_dict(),
            "synced": self.synced,
            "duplicates": self.duplicates,
            "errors": self.errors,
            "partial": self.partial,
            "cancelled": self.cancelled,
            "watermark": self.watermark.isoformat() if self.watermark else None,
            "error_code": self.error_code,
            "message": self.message,
            "windows": [w.to_dict() for w in self.windows],
        }


@dataclass(frozen=True)
class SyncStatus:
    per_device_watermark: Mapping[str, datetime]
    running: tuple[str, ...]
    next_scheduled: Optional[datetime]

    def to_dict(self) -> dict:
        return {
            "per_device_watermark": {ip: ts.isoformat() for ip, ts in sorted(self.per_device_watermark.items())},
            "running": list(self.running),
            "next_scheduled": self.next_scheduled.isoformat() if self.next_scheduled else None,
        }
