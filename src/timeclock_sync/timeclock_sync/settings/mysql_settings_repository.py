from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, normalize_mysql_time
from .model import AttendanceSettings
from .repository import SettingsRepository

ACTIVE_SETTINGS_ID = 1


class MySQLSettingsRepository(SettingsRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self) -> Optional[AttendanceSettings]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT use_custom_cutoff, cutoff_time, device_work_time, description, updated_by, updated_at
                FROM attendance_settings
                WHERE settings_id=%s
                """,
                (ACTIVE_SETTINGS_ID,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return AttendanceSettings(
                use_custom_cutoff=bool(r["use_custom_cutoff"]),
                cutoff_time=normalize_mysql_time(r["cutoff_time"]),
                device_work_time=normalize_mysql_time(r.get("device_work_time")),
                description=r.get("description"),
                updated_by=r.get("updated_by"),
                updated_at=r.get("updated_at"),
            )

    def save(self, settings: AttendanceSettings) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_settings(
                    settings_id, use_custom_cutoff, cutoff_time, device_work_time,
                    description, updated_by, updated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    use_custom_cutoff=VALUES(use_custom_cutoff),
                    cutoff_time=VALUES(cutoff_time),
                    device_work_time=VALUES(device_work_time),
                    description=VALUES(description),
                    updated_by=VALUES(updated_by),
                    updated_at=VALUES(updated_at)
                """,
                (
                    ACTIVE_SETTINGS_ID,
                    1 if settings.use_custom_cutoff else 0,
                    settings.cutoff_time,
                    settings.device_work_time,
                    settings.description,
                    settings.updated_by,
                    settings.updated_at,
                ),
            )
