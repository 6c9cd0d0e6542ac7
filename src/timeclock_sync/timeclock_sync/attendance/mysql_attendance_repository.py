from __future__ import annotations

import json
from typing import Any, Dict, Optional, Sequence

from ..core.enums import StateCode
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, placeholders
from .model import AttendanceEvent, EventFilter, SyncStats
from .repository import AttendanceRepository


def _row_to_event(r: Dict[str, Any]) -> AttendanceEvent:
    payload = r.get("raw_payload")
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8")
    if isinstance(payload, str):
        payload = json.loads(payload) if payload else {}
    return AttendanceEvent(
        unique_key=str(r["unique_key"]),
        device_ip=str(r["device_ip"]),
        employee_id=str(r["employee_id"]),
        timestamp=r["event_time"],
        state_code=StateCode(r["state_code"]),
        date=r["event_date"],
        company_id=str(r["company_id"]),
        synced_at=r["synced_at"],
        verify_mode=int(r["verify_mode"]) if r.get("verify_mode") is not None else None,
        raw_payload=payload or {},
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def existing_keys(self, keys: Sequence[str]) -> set[str]:
        keys = list(dict.fromkeys(keys))
        if not keys:
            return set()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT unique_key FROM attendance_events WHERE unique_key IN ({placeholders(len(keys))})",
                tuple(keys),
            )
            return {str(r["unique_key"]) for r in fetchall(cur)}

    def insert_batch(self, events: Sequence[AttendanceEvent]) -> tuple[int, int]:
        inserted = 0
        duplicates = 0
        if not events:
            return inserted, duplicates
        with db_cursor(self._conn_factory) as (_, cur):
            for e in events:
                try:
                    cur.execute(
                        """
                        INSERT INTO attendance_events(
                            unique_key, device_ip, employee_id, event_time, event_date,
                            state_code, verify_mode, company_id, raw_payload, synced_at
                        )
                        VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                        """,
                        (
                            e.unique_key,
                            e.device_ip,
                            e.employee_id,
                            e.timestamp,
                            e.date,
                            e.state_code.value,
                            e.verify_mode,
                            e.company_id,
                            json.dumps(dict(e.raw_payload), default=str),
                            e.synced_at,
                        ),
                    )
                except Exception as exc:
                    # Another writer stored the same punch between our check and insert.
                    if is_duplicate_key(exc):
                        duplicates += 1
                        continue
                    raise
                inserted += 1
        return inserted, duplicates

    def get_events(self, flt: EventFilter) -> Sequence[AttendanceEvent]:
        sql = """
            SELECT unique_key, device_ip, employee_id, event_time, event_date, state_code,
                   verify_mode, company_id, raw_payload, synced_at
            FROM attendance_events
            WHERE company_id=%s AND event_date BETWEEN %s AND %s
        """
        params: list[Any] = [flt.company_id, flt.start_date, flt.end_date]
        if flt.device_ip:
            sql += " AND device_ip=%s"
            params.append(flt.device_ip)
        if flt.employee_id:
            sql += " AND employee_id=%s"
            params.append(flt.employee_id)
        sql += " ORDER BY event_time ASC, event_id ASC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_row_to_event(r) for r in fetchall(cur)]

    def get_sync_stats(self, *, company_id: str, device_ip: Optional[str] = None) -> SyncStats:
        sql = """
            SELECT COUNT(*) AS total_events,
                   MIN(event_time) AS oldest_event,
                   MAX(event_time) AS newest_event,
                   MAX(synced_at) AS last_synced_at
            FROM attendance_events
            WHERE company_id=%s
        """
        params: list[Any] = [company_id]
        if device_ip:
            sql += " AND device_ip=%s"
            params.append(device_ip)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            r = fetchone(cur) or {}
            return SyncStats(
                company_id=company_id,
                device_ip=device_ip,
                total_events=int(r.get("total_events") or 0),
                oldest_event=r.get("oldest_event"),
                newest_event=r.get("newest_event"),
                last_synced_at=r.get("last_synced_at"),
            )
