"""Turn raw device punch records into AttendanceEvent values.

Records come either as pyzk `Attendance` objects (user_id, timestamp, status,
punch, uid) or as plain dicts from other client libraries and imports.
"""

from __future__ import annotations

import hashlib
from datetime import datetime
from typing import Any, Optional

from ..common.datetime_utils import to_millis
from ..core.enums import StateCode
from ..core.exceptions import MalformedEvent
from .model import AttendanceEvent

PUNCH_STATES = {
    0: StateCode.CHECK_IN,
    1: StateCode.CHECK_OUT,
    2: StateCode.BREAK_OUT,
    3: StateCode.BREAK_IN,
    4: StateCode.OT_IN,
    5: StateCode.OT_OUT,
}

# pyzk "uid" is the internal storage slot, not the enrolled user id.
_EMPLOYEE_FIELDS = ("user_id", "userId", "deviceUserId")
_TIME_FIELDS = ("timestamp", "recordTime", "record_time")
_PUNCH_FIELDS = ("punch", "state", "mode")
_VERIFY_FIELDS = ("status", "verify_mode", "verifyMode")


def _field(raw: Any, names: tuple[str, ...]) -> Any:
    for name in names:
        if isinstance(raw, dict):
            value = raw.get(name)
        else:
            value = getattr(raw, name, None)
        if value is not None and value != "":
            return value
    return None


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Device wall-clock time as a naive datetime, or None if unusable."""
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            ts = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if ts.tzinfo is not None:
        ts = ts.astimezone().replace(tzinfo=None)
    return ts


def record_timestamp(raw: Any) -> Optional[datetime]:
    return parse_timestamp(_field(raw, _TIME_FIELDS))


def state_for_punch(code: Any) -> StateCode:
    return PUNCH_STATES.get(_as_int(code), StateCode.UNKNOWN)


def event_key(device_ip: str, employee_id: str, timestamp: datetime) -> str:
    raw = f"{device_ip}_{employee_id}_{to_millis(timestamp)}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def _payload(raw: Any) -> dict:
    if isinstance(raw, dict):
        source = raw
    else:
        source = {name: getattr(raw, name, None) for name in ("uid", "user_id", "timestamp", "status", "punch")}
    payload = {}
    for key, value in source.items():
        if isinstance(value, datetime):
            value = value.isoformat()
        elif not isinstance(value, (str, int, float, bool, type(None))):
            value = str(value)
        payload[str(key)] = value
    return payload


def normalize_record(raw: Any, *, device_ip: str, company_id: str, synced_at: datetime) -> AttendanceEvent:
    if raw is None:
        raise MalformedEvent("empty record")

    employee = _field(raw, _EMPLOYEE_FIELDS)
    employee_id = str(employee).strip() if employee is not None else ""
    if not employee_id:
        raise MalformedEvent("record has no user id")

    timestamp = record_timestamp(raw)
    if timestamp is None:
        raise MalformedEvent(f"record for user {employee_id} has no valid timestamp")

    return AttendanceEvent(
        unique_key=event_key(device_ip, employee_id, timestamp),
        device_ip=device_ip,
        employee_id=employee_id,
        timestamp=timestamp,
        state_code=state_for_punch(_field(raw, _PUNCH_FIELDS)),
        date=timestamp.date(),
        company_id=company_id,
        synced_at=synced_at,
        verify_mode=_as_int(_field(raw, _VERIFY_FIELDS)),
        raw_payload=_payload(raw),
    )
