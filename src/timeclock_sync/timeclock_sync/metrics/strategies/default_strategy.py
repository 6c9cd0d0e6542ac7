from __future__ import annotations

from datetime import time

from ...core.enums import CutoffSource
from ...settings.model import AttendanceSettings, CutoffPolicy
from .base import CutoffStrategy


class DefaultCutoffStrategy(CutoffStrategy):
    def __init__(self, cutoff: time = time(9, 0)):
        self._cutoff = cutoff

    def resolve(self, settings: AttendanceSettings) -> CutoffPolicy:
        return CutoffPolicy(use_custom_cutoff=False, cutoff_time=self._cutoff, source=CutoffSource.DEFAULT)
