from __future__ import annotations

from ...core.enums import CutoffSource
from ...settings.model import AttendanceSettings, CutoffPolicy
from .base import CutoffStrategy


class DeviceReportedCutoffStrategy(CutoffStrategy):
    """Work start time reported by the terminal."""

    def resolve(self, settings: AttendanceSettings) -> CutoffPolicy:
        return CutoffPolicy(
            use_custom_cutoff=False,
            cutoff_time=settings.device_work_time,
            source=CutoffSource.DEVICE_REPORTED,
        )
