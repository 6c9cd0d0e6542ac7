from datetime import date, datetime

import pytest

from src.timeclock_sync.timeclock_sync.attendance.normalizer import event_key, normalize_record, state_for_punch
from src.timeclock_sync.timeclock_sync.core.enums import StateCode
from src.timeclock_sync.timeclock_sync.core.exceptions import MalformedEvent
from helpers import DEVICE_IP, Punch

SYNCED_AT = datetime(2024, 3, 15, 12, 0)


@pytest.mark.parametrize(
    "code, expected",
    [
        (0, StateCode.CHECK_IN),
        (1, StateCode.CHECK_OUT),
        (2, StateCode.BREAK_OUT),
        (3, StateCode.BREAK_IN),
        (4, StateCode.OT_IN),
        (5, StateCode.OT_OUT),
        (15, StateCode.UNKNOWN),
        (None, StateCode.UNKNOWN),
        ("1", StateCode.CHECK_OUT),
    ],
)
def test_punch_codes_map_to_state(code, expected):
    assert state_for_punch(code) == expected


def test_normalize_pyzk_record():
    raw = Punch(user_id="42", timestamp=datetime(2024, 3, 14, 8, 55, 12), status=1, punch=0, uid=7)

    e = normalize_record(raw, device_ip=DEVICE_IP, company_id="acme", synced_at=SYNCED_AT)

    assert e.employee_id == "42"
    assert e.state_code == StateCode.CHECK_IN
    assert e.date == date(2024, 3, 14)
    assert e.verify_mode == 1
    assert e.company_id == "acme"
    assert e.raw_payload["uid"] == 7
    assert e.raw_payload["timestamp"] == "2024-03-14T08:55:12"
    assert len(e.unique_key) == 64


def test_normalize_dict_record_with_string_timestamp():
    raw = {"deviceUserId": "42", "recordTime": "2024-03-14T17:30:00", "state": 1}

    e = normalize_record(raw, device_ip=DEVICE_IP, company_id="acme", synced_at=SYNCED_AT)

    assert e.employee_id == "42"
    assert e.timestamp == datetime(2024, 3, 14, 17, 30)
    assert e.state_code == StateCode.CHECK_OUT


def test_unique_key_depends_on_device_employee_and_millisecond():
    ts = datetime(2024, 3, 14, 8, 0, 0, 123000)

    assert event_key(DEVICE_IP, "1", ts) == event_key(DEVICE_IP, "1", ts)
    assert event_key(DEVICE_IP, "1", ts) != event_key("192.168.1.202", "1", ts)
    assert event_key(DEVICE_IP, "1", ts) != event_key(DEVICE_IP, "2", ts)
    assert event_key(DEVICE_IP, "1", ts) != event_key(DEVICE_IP, "1", ts.replace(microsecond=124000))


def test_same_punch_from_object_or_dict_has_same_key():
    ts = datetime(2024, 3, 14, 8, 0)
    a = normalize_record(Punch(user_id="5", timestamp=ts), device_ip=DEVICE_IP, company_id="acme", synced_at=SYNCED_AT)
    b = normalize_record(
        {"user_id": "5", "timestamp": ts.isoformat(), "punch": 0},
        device_ip=DEVICE_IP,
        company_id="acme",
        synced_at=SYNCED_AT,
    )

    assert a.unique_key == b.unique_key


def test_storage_slot_uid_is_not_used_as_employee_id():
    raw = Punch(user_id="", timestamp=datetime(2024, 3, 14, 8, 0), uid=7)

    with pytest.raises(MalformedEvent):
        normalize_record(raw, device_ip=DEVICE_IP, company_id="acme", synced_at=SYNCED_AT)


@pytest.mark.parametrize(
    "raw",
    [
        None,
        {"uid": 7, "timestamp": "2024-03-14T08:00:00"},
        {"timestamp": "2024-03-14T08:00:00"},
        {"user_id": "", "timestamp": "2024-03-14T08:00:00"},
        {"user_id": "1"},
        {"user_id": "1", "timestamp": "yesterday"},
        {"user_id": "1", "timestamp": 1710403200},
    ],
)
def test_malformed_records_raise(raw):
    with pytest.raises(MalformedEvent):
        normalize_record(raw, device_ip=DEVICE_IP, company_id="acme", synced_at=SYNCED_AT)
