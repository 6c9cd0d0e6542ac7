from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from typing import Optional

from ..common.datetime_utils import format_hhmm
from ..core.enums import CutoffSource


@dataclass(frozen=True)
class AttendanceSettings:
    """The single active settings row."""

    use_custom_cutoff: bool = False
    cutoff_time: time = time(9, 0)
    device_work_time: Optional[time] = None
    description: Optional[str] = None
    updated_by: Optional[str] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "use_custom_cutoff": self.use_custom_cutoff,
            "cutoff_time": format_hhmm(self.cutoff_time),
            "device_work_time": format_hhmm(self.device_work_time) if self.device_work_time else None,
            "description": self.description,
            "updated_by": self.updated_by,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class CutoffPolicy:
    """Effective cutoff used to classify the first punch of a day."""

    use_custom_cutoff: bool
    cutoff_time: time
    source: CutoffSource

    def to_dict(self) -> dict:
        return {
            "use_custom_cutoff": self.use_custom_cutoff,
            "cutoff_time": format_hhmm(self.cutoff_time),
            "source": self.source.value,
        }
