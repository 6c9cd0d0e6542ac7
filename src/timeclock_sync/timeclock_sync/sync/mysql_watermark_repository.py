from __future__ import annotations

from datetime import datetime
from typing import Mapping, Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .repository import WatermarkRepository


class MySQLWatermarkRepository(WatermarkRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, device_ip: str) -> Optional[datetime]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT last_synced_at FROM sync_watermarks WHERE device_ip=%s", (device_ip,))
            r = fetchone(cur)
            return r["last_synced_at"] if r else None

    def advance(self, device_ip: str, synced_to: datetime) -> datetime:
        with db_cursor(self._conn_factory) as (_, cur):
            # GREATEST keeps the watermark monotonic even with concurrent writers.
            cur.execute(
                """
                INSERT INTO sync_watermarks(device_ip, last_synced_at, updated_at)
                VALUES(%s,%s,NOW(3))
                ON DUPLICATE KEY UPDATE
                    last_synced_at=GREATEST(last_synced_at, VALUES(last_synced_at)),
                    updated_at=NOW(3)
                """,
                (device_ip, synced_to),
            )
            cur.execute("SELECT last_synced_at FROM sync_watermarks WHERE device_ip=%s", (device_ip,))
            r = fetchone(cur)
            return r["last_synced_at"] if r else synced_to

    def all(self) -> Mapping[str, datetime]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT device_ip, last_synced_at FROM sync_watermarks ORDER BY device_ip")
            return {str(r["device_ip"]): r["last_synced_at"] for r in fetchall(cur)}
