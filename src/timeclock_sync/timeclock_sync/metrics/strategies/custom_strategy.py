from __future__ import annotations

from ...core.enums import CutoffSource
from ...settings.model import AttendanceSettings, CutoffPolicy
from .base import CutoffStrategy


class CustomCutoffStrategy(CutoffStrategy):
    """Operator-configured cutoff."""

    def resolve(self, settings: AttendanceSettings) -> CutoffPolicy:
        return CutoffPolicy(use_custom_cutoff=True, cutoff_time=settings.cutoff_time, source=CutoffSource.CUSTOM)
