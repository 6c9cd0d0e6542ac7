from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .attendance.ingestion import IngestionPipeline
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .core import constants
from .database.connection import DBConfig, DatabaseConnection
from .devices.connection_manager import ConnectionManager
from .devices.diagnostics import DeviceDiagnostics
from .directory.mysql_employee_repository import MySQLEmployeeRepository
from .directory.repository import EmployeeRepository
from .metrics.factory import CutoffStrategyFactory
from .metrics.service import MetricsEngine
from .settings.mysql_settings_repository import MySQLSettingsRepository
from .settings.repository import SettingsRepository
from .settings.service import SettingsService
from .sync.mysql_watermark_repository import MySQLWatermarkRepository
from .sync.repository import WatermarkRepository
from .sync.scheduler import SyncScheduler
from .sync.service import SyncCoordinator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    attendance_repo: AttendanceRepository
    watermarks_repo: WatermarkRepository
    settings_repo: SettingsRepository
    employees_repo: EmployeeRepository

    connections: ConnectionManager
    diagnostics: DeviceDiagnostics
    pipeline: IngestionPipeline
    sync_coordinator: SyncCoordinator
    sync_scheduler: SyncScheduler
    attendance_service: AttendanceService
    settings_service: SettingsService
    metrics_engine: MetricsEngine

    def start(self, *, scheduled_sync: bool = True) -> None:
        self.connections.start()
        if scheduled_sync:
            self.sync_scheduler.start()

    def close(self) -> None:
        logger.info("Shutting down sync engine")
        self.sync_scheduler.shutdown()
        self.sync_coordinator.shutdown()
        self.connections.shutdown()


def assemble(
    *,
    conn: Optional[DatabaseConnection],
    attendance_repo: AttendanceRepository,
    watermarks_repo: WatermarkRepository,
    settings_repo: SettingsRepository,
    employees_repo: EmployeeRepository,
    connections: ConnectionManager,
    sync_config: dict | None = None,
) -> Container:
    """Wire services on top of already-built repositories and connection manager."""
    sync_config = sync_config or {}

    diagnostics = DeviceDiagnostics(connections)
    pipeline = IngestionPipeline(
        attendance_repo,
        connections,
        batch_size=int(sync_config.get("batch_size", constants.INGEST_BATCH_SIZE)),
    )
    sync_coordinator = SyncCoordinator(
        connections,
        pipeline,
        watermarks_repo,
        default_company_id=sync_config.get("default_company_id") or None,
        workers=int(sync_config.get("workers", constants.SYNC_WORKERS)),
    )
    sync_scheduler = SyncScheduler(
        sync_coordinator,
        interval_hours=float(sync_config.get("interval_hours", constants.SCHEDULED_SYNC_HOURS)),
    )
    attendance_service = AttendanceService(attendance_repo, watermarks_repo)
    settings_service = SettingsService(settings_repo, strategy_factory=CutoffStrategyFactory())
    metrics_engine = MetricsEngine(attendance_repo, settings_service, employees_repo)

    return Container(
        conn=conn,
        attendance_repo=attendance_repo,
        watermarks_repo=watermarks_repo,
        settings_repo=settings_repo,
        employees_repo=employees_repo,
        connections=connections,
        diagnostics=diagnostics,
        pipeline=pipeline,
        sync_coordinator=sync_coordinator,
        sync_scheduler=sync_scheduler,
        attendance_service=attendance_service,
        settings_service=settings_service,
        metrics_engine=metrics_engine,
    )


def build_container(*, db_config: dict, device_config: dict | None = None, sync_config: dict | None = None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    device_config = device_config or {}

    connections = ConnectionManager(
        default_port=int(device_config.get("port", constants.DEFAULT_DEVICE_PORT)),
        password=int(device_config.get("password", constants.DEFAULT_DEVICE_PASSWORD)),
        connect_timeout=float(device_config.get("connect_timeout", constants.CONNECT_TIMEOUT_SECONDS)),
        secondary_timeout=float(device_config.get("secondary_timeout", constants.SECONDARY_CONNECT_TIMEOUT_SECONDS)),
        fetch_timeout=float(device_config.get("fetch_timeout", constants.FETCH_TIMEOUT_SECONDS)),
        reachability_timeout=float(device_config.get("reachability_timeout", constants.REACHABILITY_TIMEOUT_SECONDS)),
        idle_minutes=int(device_config.get("idle_minutes", constants.IDLE_CONNECTION_MINUTES)),
    )

    return assemble(
        conn=conn,
        attendance_repo=MySQLAttendanceRepository(conn),
        watermarks_repo=MySQLWatermarkRepository(conn),
        settings_repo=MySQLSettingsRepository(conn),
        employees_repo=MySQLEmployeeRepository(conn),
        connections=connections,
        sync_config=sync_config,
    )
