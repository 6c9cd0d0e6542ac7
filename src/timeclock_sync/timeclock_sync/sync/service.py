from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Optional

from ..attendance.ingestion import IngestionPipeline
from ..attendance.model import IngestResult
from ..common.datetime_utils import now_local
from ..common.validators import require_device_ip
from ..core import constants
from ..core.enums import Capability, SyncModeKind, WindowStatus
from ..core.exceptions import DeviceError, ProtocolTimeout, SyncAlreadyRunning, ValidationError
from ..core.result import DeviceResult
from ..devices.connection_manager import ConnectionManager
from ..devices.model import DeviceConnection
from .model import SyncMode, SyncResult, SyncStatus, SyncWindow, WindowResult
from .repository import WatermarkRepository
from .windows import SyncWindowPlanner

logger = logging.getLogger(__name__)


class SyncCoordinator:
    """Drives device syncs: one lane per device IP, watermark advanced per stored window."""

    def __init__(
        self,
        connections: ConnectionManager,
        pipeline: IngestionPipeline,
        watermarks: WatermarkRepository,
        *,
        planner: SyncWindowPlanner | None = None,
        default_company_id: str | None = None,
        workers: int = constants.SYNC_WORKERS,
        clock: Callable[[], datetime] = now_local,
    ):
        self._connections = connections
        self._pipeline = pipeline
        self._watermarks = watermarks
        self._planner = planner or SyncWindowPlanner()
        self._default_company_id = default_company_id
        self._clock = clock
        self._pool = ThreadPoolExecutor(max_workers=int(workers), thread_name_prefix="sync-worker")

        self._lock = threading.Lock()
        self._running: dict[str, threading.Event] = {}
        self._scheduler: Any = None

    def bind_scheduler(self, scheduler: Any) -> None:
        """Attach the scheduler whose next run time is reported by get_sync_status()."""
        self._scheduler = scheduler

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def trigger_sync(
        self,
        device_ip: str,
        mode: SyncMode | None = None,
        *,
        company_id: str | None = None,
    ) -> SyncResult:
        ip = require_device_ip(device_ip)
        mode = mode or SyncMode.incremental()
        company = self._resolve_company(ip, company_id)

        cancel = self._acquire_lane(ip)
        try:
            return self._run(ip, mode, company, cancel)
        finally:
            self._release_lane(ip)

    def submit_sync(
        self,
        device_ip: str,
        mode: SyncMode | None = None,
        *,
        company_id: str | None = None,
    ) -> "Future[SyncResult]":
        ip = require_device_ip(device_ip)
        mode = mode or SyncMode.incremental()
        company = self._resolve_company(ip, company_id)

        # Lane is taken now so a second submit is rejected, not queued.
        cancel = self._acquire_lane(ip)

        def _job() -> SyncResult:
            try:
                return self._run(ip, mode, company, cancel)
            finally:
                self._release_lane(ip)

        try:
            future = self._pool.submit(_job)
        except RuntimeError:
            self._release_lane(ip)
            raise
        future.add_done_callback(lambda f: self._log_failure(ip, f))
        return future

    def cancel_sync(self, device_ip: str) -> bool:
        with self._lock:
            cancel = self._running.get(device_ip)
        if cancel is None:
            return False
        cancel.set()
        logger.info("Cancellation requested for sync on %s", device_ip)
        return True

    def is_running(self, device_ip: str) -> bool:
        with self._lock:
            return device_ip in self._running

    def sync_connected_devices(self) -> list["Future[SyncResult]"]:
        """Queue an incremental sync for every connected device able to fetch attendance.

        Busy devices and reduced-capability connections are skipped.
        """
        futures = []
        for conn in self._connections.list_connections():
            if not conn.is_connected:
                continue
            ip = conn.ip
            if not conn.capabilities.supports(Capability.GET_ATTENDANCE):
                logger.debug(
                    "Scheduled sync for %s skipped: %s client cannot fetch attendance", ip, conn.client_family.value
                )
                continue
            try:
                futures.append(self.submit_sync(ip, SyncMode.incremental()))
            except SyncAlreadyRunning:
                logger.info("Scheduled sync for %s skipped: a sync is already running", ip)
            except ValidationError as exc:
                logger.warning("Scheduled sync for %s skipped: %s", ip, exc)
        return futures

    def get_sync_status(self) -> SyncStatus:
        with self._lock:
            running = tuple(sorted(self._running))
        next_run = self._scheduler.next_run_time() if self._scheduler is not None else None
        return SyncStatus(
            per_device_watermark=dict(self._watermarks.all()),
            running=running,
            next_scheduled=next_run,
        )

    def shutdown(self) -> None:
        with self._lock:
            for cancel in self._running.values():
                cancel.set()
        self._pool.shutdown(wait=False)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _resolve_company(self, ip: str, company_id: str | None) -> str:
        if company_id and str(company_id).strip():
            return str(company_id).strip()
        current = self._connections.status(ip)
        if current is not None and current.company_id:
            return current.company_id
        if self._default_company_id:
            return self._default_company_id
        raise ValidationError(f"company_id is required to sync {ip}")

    def _acquire_lane(self, ip: str) -> threading.Event:
        with self._lock:
            if ip in self._running:
                raise SyncAlreadyRunning(f"A sync for {ip} is already running")
            cancel = threading.Event()
            self._running[ip] = cancel
            return cancel

    def _release_lane(self, ip: str) -> None:
        with self._lock:
            self._running.pop(ip, None)

    def _ensure_connected(self, ip: str, company_id: str) -> DeviceResult[DeviceConnection]:
        current = self._connections.status(ip)
        if current is not None and current.is_connected:
            return DeviceResult.success(current)
        return self._connections.connect(ip, company_id=company_id)

    def _run(self, ip: str, mode: SyncMode, company_id: str, cancel: threading.Event) -> SyncResult:
        logger.info("Starting %s sync for %s (company %s)", mode.kind.value, ip, company_id)

        connected = self._ensure_connected(ip, company_id)
        if not connected.ok:
            return self._finish(
                SyncResult(
                    success=False,
                    device_ip=ip,
                    mode=mode,
                    watermark=self._watermarks.get(ip),
                    error_code=connected.error_code,
                    message=str(connected.error),
                )
            )

        now = self._clock()
        watermark = self._watermarks.get(ip)
        windows = self._planner.plan(mode, now=now, watermark=watermark)

        results: list[WindowResult] = []
        records: Optional[list] = None
        failure: Optional[DeviceError] = None
        storage_failed = False
        timed_out = False
        cancelled = False

        for index, window in enumerate(windows):
            if cancel.is_set():
                cancelled = True
                results.extend(self._skipped(windows[index:], "cancelled"))
                break

            if records is None:
                # The device only offers a full dump; it is pulled once per run and
                # every window is filtered from the same records.
                fetched = self._pipeline.fetch(ip)
                if not fetched.ok:
                    status = WindowStatus.TIMED_OUT if isinstance(fetched.error, ProtocolTimeout) else WindowStatus.FAILED
                    timed_out = status == WindowStatus.TIMED_OUT
                    failure = None if timed_out else fetched.error
                    results.append(
                        WindowResult(
                            window=window,
                            status=status,
                            error=str(fetched.error),
                            error_code=fetched.error_code,
                        )
                    )
                    results.extend(self._skipped(windows[index + 1 :], "not attempted"))
                    break
                records = fetched.value

            ingest = self._pipeline.sync_window(
                device_ip=ip,
                company_id=company_id,
                start=window.start,
                end=window.end,
                records=records,
                include_undated=index == 0,
            )
            if ingest.storage_failures:
                storage_failed = True
                results.append(
                    WindowResult(
                        window=window,
                        status=WindowStatus.FAILED,
                        ingest=ingest,
                        error=f"{ingest.storage_failures} events could not be stored",
                        error_code="StorageFailure",
                    )
                )
                results.extend(self._skipped(windows[index + 1 :], "not attempted"))
                break

            if self._extends_watermark(mode, window, watermark):
                watermark = self._watermarks.advance(ip, min(window.end, now))
            results.append(WindowResult(window=window, status=WindowStatus.SYNCED, ingest=ingest))

        total = IngestResult()
        for r in results:
            total = total.merge(r.ingest)

        success = failure is None and not storage_failed
        if failure is not None:
            error_code, message = failure.code, str(failure)
        elif storage_failed:
            error_code, message = "StorageFailure", "Some events could not be stored; watermark not advanced"
        elif timed_out:
            error_code, message = ProtocolTimeout.code, "Device did not answer in time; partial sync"
        elif cancelled:
            error_code, message = None, "Sync cancelled"
        else:
            error_code, message = None, f"Synced {total.stored_count} new events"

        return self._finish(
            SyncResult(
                success=success,
                device_ip=ip,
                mode=mode,
                synced=total.stored_count,
                duplicates=total.duplicate_count,
                errors=total.error_count,
                windows=tuple(results),
                partial=timed_out or cancelled,
                cancelled=cancelled,
                watermark=watermark,
                error_code=error_code,
                message=message,
            )
        )

    @staticmethod
    def _extends_watermark(mode: SyncMode, window: SyncWindow, watermark: Optional[datetime]) -> bool:
        """A stored window may only move the watermark if nothing between them is left unsynced."""
        if watermark is None:
            return mode.kind == SyncModeKind.INCREMENTAL
        return window.start <= watermark

    @staticmethod
    def _skipped(windows: list[SyncWindow], reason: str) -> list[WindowResult]:
        return [WindowResult(window=w, status=WindowStatus.SKIPPED, error=reason) for w in windows]

    @staticmethod
    def _finish(result: SyncResult) -> SyncResult:
        if result.success:
            logger.info(
                "Sync for %s finished: synced=%d duplicates=%d errors=%d partial=%s",
                result.device_ip,
                result.synced,
                result.duplicates,
                result.errors,
                result.partial,
            )
        else:
            logger.warning("Sync for %s failed: %s (%s)", result.device_ip, result.message, result.error_code)
        return result

    @staticmethod
    def _log_failure(ip: str, future: "Future[SyncResult]") -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Background sync for %s raised", ip, exc_info=exc)
