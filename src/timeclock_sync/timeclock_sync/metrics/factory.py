from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time
from typing import Optional

from ..common.datetime_utils import parse_hhmm
from ..core import constants
from ..settings.model import AttendanceSettings, CutoffPolicy
from .strategies.base import CutoffStrategy
from .strategies.custom_strategy import CustomCutoffStrategy
from .strategies.default_strategy import DefaultCutoffStrategy
from .strategies.device_strategy import DeviceReportedCutoffStrategy


@dataclass
class CutoffStrategyFactory:
    """Factory Pattern: custom cutoff > device-reported work time > default."""

    default_cutoff: time = field(default_factory=lambda: parse_hhmm(constants.DEFAULT_CUTOFF))

    def for_settings(self, settings: Optional[AttendanceSettings]) -> CutoffStrategy:
        if settings is None:
            return DefaultCutoffStrategy(self.default_cutoff)
        if settings.use_custom_cutoff and settings.cutoff_time is not None:
            return CustomCutoffStrategy()
        if settings.device_work_time is not None:
            return DeviceReportedCutoffStrategy()
        return DefaultCutoffStrategy(self.default_cutoff)

    def resolve(self, settings: Optional[AttendanceSettings]) -> CutoffPolicy:
        return self.for_settings(settings).resolve(settings or AttendanceSettings(cutoff_time=self.default_cutoff))
