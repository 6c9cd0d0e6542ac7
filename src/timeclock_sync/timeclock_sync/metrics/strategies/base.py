from __future__ import annotations

from abc import ABC, abstractmethod

from ...settings.model import AttendanceSettings, CutoffPolicy


class CutoffStrategy(ABC):
    """Strategy Pattern: where the lateness cutoff for a day comes from."""

    @abstractmethod
    def resolve(self, settings: AttendanceSettings) -> CutoffPolicy:
        raise NotImplementedError
