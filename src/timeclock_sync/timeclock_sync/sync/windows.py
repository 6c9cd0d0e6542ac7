from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ..common.datetime_utils import start_of_day
from ..core import constants
from ..core.enums import SyncModeKind
from .model import SyncMode, SyncWindow


@dataclass(frozen=True)
class SyncWindowPlanner:
    """Turns a sync mode into the ordered, contiguous windows to fetch and store."""

    first_sync_days: int = constants.FIRST_SYNC_DAYS
    overlap_days: int = constants.INCREMENTAL_OVERLAP_DAYS
    max_single_window_days: int = constants.MAX_SINGLE_WINDOW_DAYS
    batch_days: int = constants.BATCH_WINDOW_DAYS

    def span(self, mode: SyncMode, *, now: datetime, watermark: Optional[datetime]) -> SyncWindow:
        if mode.kind == SyncModeKind.FORCED_DAYS:
            return SyncWindow(start=now - timedelta(days=int(mode.days)), end=now)

        if mode.kind == SyncModeKind.FORCED_RANGE:
            return SyncWindow(
                start=start_of_day(mode.start_date),
                end=start_of_day(mode.end_date) + timedelta(days=1),
            )

        if watermark is not None:
            # Overlap covers punches the device stored late with an earlier timestamp.
            start = min(watermark - timedelta(days=self.overlap_days), now)
        else:
            start = now - timedelta(days=self.first_sync_days)
        return SyncWindow(start=start, end=now)

    def split(self, window: SyncWindow) -> list[SyncWindow]:
        if window.end - window.start <= timedelta(days=self.max_single_window_days):
            return [window]

        step = timedelta(days=self.batch_days)
        windows: list[SyncWindow] = []
        cursor = window.start
        while cursor < window.end:
            upper = min(cursor + step, window.end)
            windows.append(SyncWindow(start=cursor, end=upper))
            cursor = upper
        return windows

    def plan(self, mode: SyncMode, *, now: datetime, watermark: Optional[datetime]) -> list[SyncWindow]:
        return self.split(self.span(mode, now=now, watermark=watermark))
