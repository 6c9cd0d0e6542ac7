from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler

from ..core import constants
from .service import SyncCoordinator

logger = logging.getLogger(__name__)

JOB_ID = "scheduled-incremental-sync"


class SyncScheduler:
    """Runs an incremental sync of every connected device on a fixed interval.

    Manual triggers go straight to the coordinator and do not move the schedule.
    """

    def __init__(
        self,
        coordinator: SyncCoordinator,
        *,
        interval_hours: float = constants.SCHEDULED_SYNC_HOURS,
        scheduler: BackgroundScheduler | None = None,
    ):
        self._coordinator = coordinator
        self._interval_hours = float(interval_hours)
        self._scheduler = scheduler or BackgroundScheduler(
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": 900,
            }
        )
        self._scheduler.add_job(
            self.run_once,
            "interval",
            hours=self._interval_hours,
            id=JOB_ID,
            replace_existing=True,
        )
        coordinator.bind_scheduler(self)

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def start(self) -> None:
        if self._scheduler.running:
            return
        self._scheduler.start()
        logger.info("Scheduled sync every %s hours, next run at %s", self._interval_hours, self.next_run_time())

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    def next_run_time(self) -> Optional[datetime]:
        job = self._scheduler.get_job(JOB_ID)
        return getattr(job, "next_run_time", None) if job else None

    def run_once(self) -> int:
        """Queue one round of syncs; returns how many devices were queued."""
        futures = self._coordinator.sync_connected_devices()
        logger.info("Scheduled sync queued for %d connected devices", len(futures))
        return len(futures)
