from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local, parse_hhmm
from ..core.exceptions import ValidationError
from ..metrics.factory import CutoffStrategyFactory
from .model import AttendanceSettings, CutoffPolicy
from .repository import SettingsRepository

logger = logging.getLogger(__name__)


class SettingsService:
    def __init__(
        self,
        repo: SettingsRepository,
        *,
        strategy_factory: CutoffStrategyFactory | None = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._repo = repo
        self._factory = strategy_factory or CutoffStrategyFactory()
        self._clock = clock

    def get_settings(self) -> AttendanceSettings:
        return self._repo.get() or AttendanceSettings(cutoff_time=self._factory.default_cutoff)

    def get_cutoff_policy(self) -> CutoffPolicy:
        return self._factory.resolve(self._repo.get())

    def update_cutoff(
        self,
        *,
        use_custom_cutoff: bool,
        cutoff_time: Optional[str] = None,
        updated_by: Optional[str] = None,
        description: Optional[str] = None,
    ) -> AttendanceSettings:
        if use_custom_cutoff and not cutoff_time:
            raise ValidationError("cutoff_time is required when the custom cutoff is enabled")

        current = self.get_settings()
        updated = replace(
            current,
            use_custom_cutoff=bool(use_custom_cutoff),
            cutoff_time=parse_hhmm(cutoff_time) if cutoff_time else current.cutoff_time,
            description=description if description is not None else current.description,
            updated_by=updated_by,
            updated_at=self._clock(),
        )
        self._repo.save(updated)
        logger.info(
            "Cutoff updated by %s: custom=%s cutoff=%s",
            updated_by or "unknown",
            updated.use_custom_cutoff,
            updated.cutoff_time.strftime("%H:%M"),
        )
        return updated

    def record_device_work_time(self, work_time: Optional[str]) -> AttendanceSettings:
        """Store the work start time reported by a terminal; None clears it."""
        current = self.get_settings()
        updated = replace(
            current,
            device_work_time=parse_hhmm(work_time) if work_time else None,
            updated_at=self._clock(),
        )
        self._repo.save(updated)
        return updated
